"""
Candidate retrieval.

Responsibilities:
- Call the Google Places text / nearby search endpoints.
- Walk the next_page_token chain sequentially with the mandatory delay.
- Cache finished pools in process (L1) and in Redis (L2).
"""
