"""
Feature derivation.

Responsibilities:
- Define the fixed eight-factor feature vector (plus auxiliary air quality).
- Turn the four source results, successful or not, into a clamped vector.
- Flag vectors built purely from baseline defaults.
"""
