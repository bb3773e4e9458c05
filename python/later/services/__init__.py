"""Business logic services.

This module contains service-layer code called by route handlers and by the
in-process UI layer. Search is the only service.
"""
