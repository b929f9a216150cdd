"""Passcode bridge HTTP module.

Exposes /recent and /code on top of the PasscodeResolver.
"""
