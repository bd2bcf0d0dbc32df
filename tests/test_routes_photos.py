"""Tests for photo upload, moderation and gallery routes."""

import pytest

BUCKET = "fotofi-photos"


def create_upload(client, file_name="1700000000000-photo.jpg"):
    response = client.post(
        "/photos/upload",
        json={"fileName": file_name, "fileType": "image/jpeg", "bucketName": BUCKET},
    )
    assert response.status_code == 200
    return response.json()["uploadId"]


def upload_file(client, object_storage, file_name, chunks):
    """Run create, sign, transfer and getETag for every chunk; returns (uploadId, parts)."""
    upload_id = create_upload(client, file_name)
    parts = []
    for number, data in enumerate(chunks, start=1):
        response = client.post(
            "/photos/upload",
            json={"fileName": file_name, "partNumber": number, "uploadId": upload_id, "bucketName": BUCKET},
        )
        assert response.status_code == 200
        assert response.json()["signedUrl"]

        object_storage.put_part(upload_id, number, data)

        response = client.post(
            "/photos/upload",
            json={
                "fileName": file_name,
                "uploadId": upload_id,
                "partNumber": number,
                "bucketName": BUCKET,
                "action": "getETag",
            },
        )
        assert response.status_code == 200
        parts.append({"PartNumber": number, "ETag": response.json()["ETag"]})
    return upload_id, parts


def complete(client, file_name, upload_id, parts):
    return client.put(
        "/photos/upload",
        json={"fileName": file_name, "uploadId": upload_id, "parts": parts, "bucketName": BUCKET},
    )


def test_upload_requires_bucket_name(client):
    response = client.post("/photos/upload", json={"fileName": "a.jpg", "fileType": "image/jpeg"})

    assert response.status_code == 400
    assert response.json() == {"error": "Bucket name is required"}


@pytest.mark.parametrize("method", ["PUT", "DELETE"])
def test_complete_and_abort_require_bucket_name(client, method):
    response = client.request(method, "/photos/upload", json={"fileName": "a.jpg", "uploadId": "u1"})

    assert response.status_code == 400
    assert response.json()["error"] == "Bucket name is required"


def test_upload_requires_file_name(client):
    response = client.post("/photos/upload", json={"bucketName": BUCKET})

    assert response.status_code == 400
    assert response.json() == {"error": "File name is required"}


def test_upload_rejects_out_of_range_part_number(client):
    response = client.post(
        "/photos/upload",
        json={"fileName": "a.jpg", "partNumber": 10001, "uploadId": "u1", "bucketName": BUCKET},
    )

    assert response.status_code == 400
    assert "partNumber" in response.json()["error"]


def test_create_upload(client, object_storage):
    upload_id = create_upload(client)

    assert object_storage.uploads[upload_id]["key"] == "1700000000000-photo.jpg"


def test_get_etag_for_missing_part(client):
    upload_id = create_upload(client)

    response = client.post(
        "/photos/upload",
        json={"fileName": "1700000000000-photo.jpg", "uploadId": upload_id, "partNumber": 1,
              "bucketName": BUCKET, "action": "getETag"},
    )

    assert response.status_code == 404
    assert response.json() == {"error": "Part not found"}


def test_list_parts(client, object_storage):
    upload_id, _ = upload_file(client, object_storage, "1-a.jpg", [b"abc", b"de"])

    response = client.post(
        "/photos/upload",
        json={"fileName": "1-a.jpg", "uploadId": upload_id, "bucketName": BUCKET, "action": "listParts"},
    )

    assert response.status_code == 200
    parts = response.json()["parts"]
    assert [(part["PartNumber"], part["Size"]) for part in parts] == [(1, 3), (2, 2)]
    assert all('"' not in part["ETag"] for part in parts)


def test_storage_failure_is_500(client, object_storage):
    object_storage.fail_on.add("create")

    response = client.post(
        "/photos/upload",
        json={"fileName": "1-a.jpg", "fileType": "image/jpeg", "bucketName": BUCKET},
    )

    assert response.status_code == 500
    assert response.json() == {"error": "Upload failed"}


def test_full_upload_creates_pending_image(client, object_storage, app):
    upload_id, parts = upload_file(client, object_storage, "1-a.jpg", [b"x" * 10, b"y" * 10, b"z" * 5])

    response = complete(client, "1-a.jpg", upload_id, list(reversed(parts)))

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Upload completed successfully"
    assert body["result"]["key"] == "1-a.jpg"
    assert object_storage.objects[(BUCKET, "1-a.jpg")] == b"x" * 10 + b"y" * 10 + b"z" * 5

    images = app.state.moderation_store.list_all()
    assert len(images) == 1
    assert images[0].id == body["imageId"]
    assert images[0].url == "https://media.test/1-a.jpg"
    assert images[0].status.value == "pending"


def test_complete_with_gap_is_400(client, object_storage, app):
    upload_id, parts = upload_file(client, object_storage, "1-a.jpg", [b"a", b"b", b"c"])

    response = complete(client, "1-a.jpg", upload_id, [parts[0], parts[2]])

    assert response.status_code == 400
    assert app.state.moderation_store.list_all() == []


def test_complete_rejected_by_storage_is_500(client, object_storage):
    upload_id, parts = upload_file(client, object_storage, "1-a.jpg", [b"a"])
    parts[0]["ETag"] = "not-the-etag"

    response = complete(client, "1-a.jpg", upload_id, parts)

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to complete upload"}


def test_abort_upload(client, object_storage):
    upload_id, _ = upload_file(client, object_storage, "1-a.jpg", [b"a"])

    response = client.request(
        "DELETE",
        "/photos/upload",
        json={"fileName": "1-a.jpg", "uploadId": upload_id, "bucketName": BUCKET},
    )

    assert response.status_code == 200
    assert response.json() == {"message": "Upload aborted successfully"}
    assert upload_id not in object_storage.uploads


def test_moderate_then_gallery(client, object_storage):
    upload_id, parts = upload_file(client, object_storage, "1-a.jpg", [b"a"])
    image_id = complete(client, "1-a.jpg", upload_id, parts).json()["imageId"]

    assert client.get("/photos/gallery").json() == {"success": True, "photos": []}

    response = client.post("/photos/moderate", json={"imageId": image_id, "action": "approve"})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Image approved successfully"
    assert body["image"]["status"] == "approved"

    photos = client.get("/photos/gallery").json()["photos"]
    assert [photo["id"] for photo in photos] == [image_id]
    assert "status" not in photos[0]

    response = client.post("/photos/moderate", json={"imageId": image_id, "action": "reject"})
    assert response.json()["message"] == "Image rejected successfully"
    assert client.get("/photos/gallery").json()["photos"] == []


def test_moderation_list_includes_all_statuses(client, object_storage):
    ids = []
    for name in ["1-a.jpg", "2-b.jpg"]:
        upload_id, parts = upload_file(client, object_storage, name, [b"a"])
        ids.append(complete(client, name, upload_id, parts).json()["imageId"])
    client.post("/photos/moderate", json={"imageId": ids[1], "action": "reject"})

    response = client.get("/photos/moderate")

    assert response.status_code == 200
    statuses = {image["id"]: image["status"] for image in response.json()["images"]}
    assert statuses == {ids[0]: "pending", ids[1]: "rejected"}


def test_moderate_unknown_image(client):
    response = client.post("/photos/moderate", json={"imageId": "nope", "action": "approve"})

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Image not found"}


def test_moderate_requires_fields(client):
    response = client.post("/photos/moderate", json={"imageId": "x"})

    assert response.status_code == 400
    assert response.json()["error"] == "Missing imageId or action"


def test_moderate_invalid_action(client):
    response = client.post("/photos/moderate", json={"imageId": "x", "action": "delete"})

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_submit_guest_photo(client, submission_store):
    response = client.post(
        "/photos/submit",
        json={"name": "Sam", "email": "sam@example.com", "facePhoto": "data:image/png;base64,AAAA"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert submission_store.saved[body["id"]]["email"] == "sam@example.com"


def test_submit_rejects_bad_email(client, submission_store):
    response = client.post(
        "/photos/submit",
        json={"name": "Sam", "email": "not-an-email", "facePhoto": "data:image/png;base64,AAAA"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid email format"}
    assert submission_store.saved == {}


def test_submit_requires_all_fields(client):
    response = client.post("/photos/submit", json={"name": "Sam"})

    assert response.status_code == 400


def test_submit_store_failure(client, submission_store):
    submission_store.fail = True

    response = client.post(
        "/photos/submit",
        json={"name": "Sam", "email": "sam@example.com", "facePhoto": "data:image/png;base64,AAAA"},
    )

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to submit form"}
