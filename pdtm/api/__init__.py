"""HTTP API - FastAPI app, routers and request/response models"""
