"""Mysteria Realm API: comments, reputation, mystery challenges and back office."""
