"""s3rpm - publish signed RPM repositories to S3."""

__version__ = "0.1.0"
