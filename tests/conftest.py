"""Pytest configuration and shared fixtures."""

import hashlib
import os
from types import SimpleNamespace

# Settings are read at import time; keep tests off disk and off the network
os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LLM_API_KEY", "test-key")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from fotofi.main import create_app  # noqa: E402
from fotofi.services.submissions import SubmissionStore, SubmissionStoreError  # noqa: E402
from fotofi.storage.client_cache import StorageClientCache  # noqa: E402
from fotofi.storage.multipart import MultipartUploadIssuer  # noqa: E402

PUBLIC_BASE_URL = "https://media.test"
STORAGE_BASE_URL = "https://storage.test"


class FakeObjectStorage:
    """In-memory stand-in for the MinIO client's multipart calls."""

    def __init__(self):
        self.uploads = {}
        self.objects = {}
        self.fail_on = set()
        self._next_id = 0

    def _check(self, operation):
        if operation in self.fail_on:
            raise ConnectionError(f"{operation} unavailable")

    def _create_multipart_upload(self, bucket_name, object_name, headers):
        self._check("create")
        self._next_id += 1
        upload_id = f"upload-{self._next_id}"
        self.uploads[upload_id] = {
            "bucket": bucket_name,
            "key": object_name,
            "content_type": headers.get("Content-Type"),
            "parts": {},
        }
        return upload_id

    def get_presigned_url(self, method, bucket_name, object_name, expires=None, extra_query_params=None):
        self._check("sign")
        params = extra_query_params or {}
        return (
            f"{STORAGE_BASE_URL}/{bucket_name}/{object_name}"
            f"?uploadId={params.get('uploadId')}&partNumber={params.get('partNumber')}"
        )

    def put_part(self, upload_id, part_number, data):
        """Accept part bytes as storage would; returns the quoted ETag."""
        etag = f'"{hashlib.md5(data).hexdigest()}"'
        self.uploads[upload_id]["parts"][part_number] = (etag, data)
        return etag

    def _list_parts(self, bucket_name, object_name, upload_id, max_parts=None, part_number_marker=None):
        self._check("list")
        upload = self.uploads.get(upload_id)
        if upload is None:
            raise KeyError(f"NoSuchUpload: {upload_id}")

        marker = int(part_number_marker or 0)
        numbers = [number for number in sorted(upload["parts"]) if number > marker]
        if max_parts is not None:
            numbers = numbers[:max_parts]
        parts = [
            SimpleNamespace(part_number=number, etag=upload["parts"][number][0], size=len(upload["parts"][number][1]))
            for number in numbers
        ]
        return SimpleNamespace(parts=parts, is_truncated=False, next_part_number_marker=None)

    def _complete_multipart_upload(self, bucket_name, object_name, upload_id, parts):
        self._check("complete")
        upload = self.uploads.pop(upload_id)
        data = b""
        for part in parts:
            etag, chunk = upload["parts"][part.part_number]
            if etag.strip('"') != part.etag.strip('"'):
                raise ValueError(f"InvalidPart: {part.part_number}")
            data += chunk
        self.objects[(bucket_name, object_name)] = data
        return SimpleNamespace(
            bucket_name=bucket_name,
            object_name=object_name,
            etag=f'"{hashlib.md5(data).hexdigest()}-{len(parts)}"',
            version_id=None,
            location=f"{STORAGE_BASE_URL}/{bucket_name}/{object_name}",
        )

    def _abort_multipart_upload(self, bucket_name, object_name, upload_id):
        self._check("abort")
        self.uploads.pop(upload_id, None)


class InMemorySubmissionStore(SubmissionStore):
    def __init__(self):
        self.saved = {}
        self.fail = False

    def save(self, submission_id, name, email, face_photo):
        if self.fail:
            raise SubmissionStoreError(submission_id)
        self.saved[submission_id] = {"name": name, "email": email, "facePhoto": face_photo}


class FakeLLM:
    """Chat client that streams a canned reply."""

    def __init__(self, deltas=("Hello", " there")):
        self.enabled = True
        self.deltas = list(deltas)
        self.calls = []

    async def stream_reply(self, system_prompt, messages):
        self.calls.append((system_prompt, messages))
        for delta in self.deltas:
            yield delta


@pytest.fixture
def object_storage():
    return FakeObjectStorage()


@pytest.fixture
def submission_store():
    return InMemorySubmissionStore()


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def app(object_storage, submission_store, fake_llm):
    """Fresh application with an in-memory database and fake backends."""
    application = create_app()
    cache = StorageClientCache(factory=lambda bucket_name: object_storage, ttl_seconds=900)
    application.state.upload_issuer = MultipartUploadIssuer(
        cache,
        application.state.moderation_store,
        public_base_url=PUBLIC_BASE_URL,
    )
    application.state.submission_store = submission_store
    application.state.llm_client = fake_llm
    return application


@pytest.fixture
def client(app):
    """Create test client."""
    return TestClient(app)


def register_and_login(client, email, name="Test User", password="correct-horse"):
    """Register an account and return bearer auth headers for it."""
    response = client.post(
        "/api/auth/register",
        json={"name": name, "email": email, "password": password},
    )
    assert response.status_code == 201
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def auth_headers(client):
    return register_and_login(client, "alice@example.com", name="Alice")


@pytest.fixture
def other_auth_headers(client):
    return register_and_login(client, "bob@example.com", name="Bob")


@pytest.fixture
def login(client):
    """Register and log in another account; returns its auth headers."""

    def _login(email, name="Test User", password="correct-horse"):
        return register_and_login(client, email, name=name, password=password)

    return _login
