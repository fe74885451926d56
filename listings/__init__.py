"""
Listings backend.

A FastAPI service that keeps property listings and their images on a
remote FTP server. The listings live in a single JSON document on the
server; there is no local database.
"""
