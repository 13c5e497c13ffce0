import base64
import io
import os
import pytest
from moto import mock_aws
from fastapi.testclient import TestClient
from PIL import Image

# Environment must be set BEFORE importing app modules
# Dummy AWS credentials for moto
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
os.environ["AWS_SECURITY_TOKEN"] = "testing"
os.environ["AWS_SESSION_TOKEN"] = "testing"
os.environ["AWS_REGION"] = "us-east-1"
os.environ["PHOTOS_BUCKET"] = "photos"
os.environ["METADATA_BUCKET"] = "metadata"
# Clear the endpoint and public URL so moto mocks and presigned URLs are used
os.environ.pop("AWS_ENDPOINT_URL", None)
os.environ.pop("PUBLIC_BASE_URL", None)
os.environ.pop("ACCESS_TOKEN", None)

from app.main import app, build_photo_service
from app.settings import settings
from app.storage.s3 import S3Service


def make_png_bytes(color="red"):
    """Generate a simple valid PNG in-memory."""
    img = Image.new("RGB", (10, 10), color=color)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def make_data_uri(data=None, mime="image/png"):
    data = data if data is not None else make_png_bytes()
    return f"data:{mime};base64,{base64.b64encode(data).decode()}"


@pytest.fixture(scope="function")
def aws_credentials():
    """Mocked AWS Credentials for moto."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"


@pytest.fixture(scope="function")
def s3_service(aws_credentials):
    """S3Service against an empty moto account; no buckets exist yet."""
    with mock_aws():
        yield S3Service(settings)


@pytest.fixture(scope="function")
def photo_service(s3_service):
    s3_service.ensure_bucket(settings.photos_bucket)
    s3_service.ensure_bucket(settings.metadata_bucket)
    return build_photo_service(s3_service)


@pytest.fixture(scope="function")
def test_client(aws_credentials):
    with mock_aws():
        # lifespan creates the S3 client and both buckets within the moto context
        with TestClient(app) as client:
            yield client
