"""
FastAPI routers for the import collaborator endpoints.
"""
