"""
GiftSync – donor receipt reconciliation against an external accounting service.
"""
__version__ = "0.1.0"
