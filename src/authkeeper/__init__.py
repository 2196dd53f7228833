"""authkeeper: user account store and unverified-account cleanup"""

__version__ = "0.1.0"
