"""
Free-text place search.

Turns queries such as "pizza near me" or "open kosher restaurant at 8pm"
into grouped, filtered Google Places results that mark unverified data
instead of guessing it.
"""
