"""
Engines: scoring, generation orchestration, access tokens, attempt sessions.
"""
