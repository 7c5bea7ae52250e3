"""
Backend package for the church website CMS.

This package provides a FastAPI application over a document record store
and S3 object storage for uploaded images and sermon audio.
"""
