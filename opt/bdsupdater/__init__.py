"""Bedrock dedicated server supervisor and auto-updater."""
