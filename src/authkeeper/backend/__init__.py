"""Core: user records, password hashing, database bootstrap, cleanup"""
