"""
MongoDB access for the storefront.

`db` is None when DATABASE_URL / DATABASE_NAME are not configured; callers
check for that and fall back to in-process storage.
"""

from pymongo import MongoClient

from settings import DATABASE_URL, DATABASE_NAME

db = None

if DATABASE_URL and DATABASE_NAME:
    _client = MongoClient(DATABASE_URL)
    db = _client[DATABASE_NAME]
