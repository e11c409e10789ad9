"""Darood Counter backend: referral program and points awards."""

__version__ = "1.0.0"
