"""
Core infrastructure for the Tubely backend application.

This package contains the components that talk to the outside world:
- auth: bearer token validation and video ownership checks
- database: MongoDB (Motor) record store and connection lifecycle
- storage: S3-compatible object storage client for published videos
"""
