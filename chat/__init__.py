"""
Webchat Chat Service

HTTP API and answer pipeline.
"""

__version__ = "0.1.0"
