"""Enumeration types for authkeeper"""
from enum import Enum


class AccountStatus(str, Enum):
    """Account verification status

    A record starts PENDING and either moves to VERIFIED through code
    verification or is deleted by the unverified-account reaper.
    Both VERIFIED and deletion are terminal.
    """

    PENDING = "pending"
    VERIFIED = "verified"
