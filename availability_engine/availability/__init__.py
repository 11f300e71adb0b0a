"""
Availability services:
- Overlap detection (overlap.py)
- Schedule template source (templates.py)
- Calendar inventory (inventory.py)
- Open slots and day status (resolver.py)
- Professional eligibility (professionals.py)
"""
