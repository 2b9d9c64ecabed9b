"""
Key-value storage ports for the deal tracker envelope.

Responsibilities:
- Define the get/set port the state container persists through.
- Provide an in-memory port for tests and a JSON-file port for local use.
"""
