"""
Ranking engine.

Responsibilities:
- Fold a snapshot of reviews into one ranking per product, counting only
  the current review of every author.
- Parse raw request parameters into typed ranking filters.
- Filter, order and number rankings for presentation.
"""
