"""Kopf handler modules.

Run with ``kopf run -m s3_bucket_validator.handlers``.
"""

# Import handlers to register them - handlers register themselves via @kopf decorators
from . import admission  # noqa: F401
