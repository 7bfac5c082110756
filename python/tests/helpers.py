"""Shared constants for tests."""

FIREBASE_BASE_URL = "https://firebasestorage.test/v0"
FIREBASE_BUCKET = "ink-test.appspot.com"
