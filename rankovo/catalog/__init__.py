"""
Closed value sets shared by the store, the ranking filters and the API.

Responsibilities:
- Define the supported product categories and their German labels.
- Define the supported cities and the rating scale.
- Recognise external review sources from their URLs.
"""
