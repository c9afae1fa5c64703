"""UploadAgent - Chunked multipart uploads through presigned URLs."""

__version__ = "0.1.0"
