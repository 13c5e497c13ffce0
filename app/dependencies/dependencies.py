from fastapi import Request
from app.photo_service.service import PhotoService
from app.storage.s3 import S3Service

def get_s3_service(request: Request) -> S3Service:
    """Dependency provider for S3Service"""
    return request.app.state.s3

def get_photo_service(request: Request) -> PhotoService:
    """Dependency provider for PhotoService"""
    return request.app.state.photos
