"""
Post-retrieval filtering.

Responsibilities:
- Apply open-state, price, kosher, accessibility and parking constraints
  with tri-state logic: unknown provider data is kept and counted, never
  treated as a mismatch.
- Drop candidates too far from the resolved city centre.
- Report per-dimension before/after/removed/unknown counts.
"""
