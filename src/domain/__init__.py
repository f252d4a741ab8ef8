"""
Domain layer for the email forwarding pipeline.

This layer contains:
- Configuration (explicit, built once per invocation)
- Data models (type-safe structures and gateway protocols)
- Business logic (recipient mapping and the forwarding pipeline)
- Error types (one per failure kind)
"""
