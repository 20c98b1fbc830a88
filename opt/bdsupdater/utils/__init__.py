"""
Utils package for the Bedrock server auto-updater.

This package contains utility helpers for:
- Loop-safe resettable events shared by the updater gates
"""
