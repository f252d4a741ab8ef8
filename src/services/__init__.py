"""
Service functions and gateways used by the forwarding pipeline.

This package contains header rewriting for raw messages and the S3 and SES
gateways.
"""

__all__ = ['email', 's3', 'ses']
