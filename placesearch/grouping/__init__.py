"""
Proximity grouping of filtered results.

Responsibilities:
- Assign each result to the nearest group anchor within the exact or
  nearby radius, or start a new group.
- Name the first (or seeded) group after the detected street token.
- Report member count and exact / nearby composition per group.
"""
