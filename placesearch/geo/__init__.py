"""
Geographic helpers.

Responsibilities:
- Coordinates model shared by every stage.
- Great-circle distances (single pair and pairwise matrices).
- City-centre resolution through the Google Geocoding API.
"""
