"""
Resource routers for the catalog API.
"""
