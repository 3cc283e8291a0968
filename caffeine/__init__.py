"""Caffeine: desktop apps from web frontends, rendered by a JVM shell."""

__version__ = "1.0.0"
