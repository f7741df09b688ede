"""Automated Lotto 6/45 purchasing for dhlottery.co.kr accounts."""

__version__ = "0.1.0"
