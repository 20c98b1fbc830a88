"""
Process supervision for the dedicated server.
"""

from .process import ServerProcess

__all__ = ['ServerProcess']
