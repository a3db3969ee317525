"""
Service layer wrapping the TOON codec for batch and HTTP use.
"""
