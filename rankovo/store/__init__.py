"""
In-memory data store.

Responsibilities:
- Load places, products, users, critics and reviews from CSV with pandas.
- Hand out immutable, denormalized review snapshots for the ranking engine.
- Apply writes (new reviews superseding old ones, edits, new products and
  places, username changes) one at a time.
- Back up the tables to CSV and restore them.
"""
