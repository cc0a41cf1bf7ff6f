"""
Document Gateway.

Schema-validated data access, federated search and chunked large-object
storage in front of a MongoDB document store.
"""

__version__ = "0.1.0"
