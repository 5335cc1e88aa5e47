"""
User + family feature: schemas, validation rules, persistence, use cases and
HTTP routes.
"""
