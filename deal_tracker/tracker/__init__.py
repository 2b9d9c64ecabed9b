"""
Deal tracker state container.

Responsibilities:
- Own user preferences, view history, saved deals and favorite stores.
- Load and persist the whole state as one versioned storage envelope.
- Apply every mutation as compute-next-state, replace, persist.
- Filter and sort saved deals for listing.
"""
