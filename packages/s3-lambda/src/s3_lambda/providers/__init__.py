"""Object store implementations.

Each provider module exports a `Provider` class alias for the main provider class,
along with its credentials and params types where it has them.

Available providers:
- s3: AWS S3 / MinIO / R2 via boto3
- memory: in-process store with S3 listing semantics
"""

from s3_lambda.providers import memory, s3

__all__ = [
    "memory",
    "s3",
]
