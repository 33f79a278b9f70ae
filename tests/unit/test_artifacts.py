from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from fastapi import status
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from src.core.auth import Role
from src.core.config import get_settings
from src.domain.errors import ArtifactNotFoundError, LearnerNotFoundError, PermissionDeniedError
from src.domain.models import ArtifactFileType, User
from src.domain.reference_data import DEMO_ORG, EDUCATOR_ID, TEST_LEARNER_ID
from src.domain.services.artifacts import (
    ArtifactService,
    ArtifactValidationError,
    detect_file_type,
    storage_key_for,
)
from src.libs.blob_store import BlobStoreError, LocalBlobStore

from tests.utils import auth_headers

pytestmark = pytest.mark.asyncio

LEARNER = User(user_id=TEST_LEARNER_ID, roles=["learner"], org_id=DEMO_ORG["id"])
EDUCATOR = User(user_id=EDUCATOR_ID, roles=["educator"], org_id=DEMO_ORG["id"])
PDF_BYTES = b"%PDF-1.4 evidence"


@pytest.mark.parametrize(
    ("filename", "expected"),
    [
        ("report.PDF", ArtifactFileType.PDF),
        ("photo.jpeg", ArtifactFileType.JPG),
        ("photo.jpg", ArtifactFileType.JPG),
        ("diagram.png", ArtifactFileType.PNG),
        ("demo.mp4", ArtifactFileType.MP4),
    ],
)
async def test_detect_file_type(filename: str, expected: ArtifactFileType) -> None:
    assert detect_file_type(filename) == expected


@pytest.mark.parametrize("filename", ["notes.docx", "archive.tar.gz", "README"])
async def test_detect_file_type_rejects_other_extensions(filename: str) -> None:
    with pytest.raises(ArtifactValidationError):
        detect_file_type(filename)


async def test_storage_key_is_scoped_to_learner() -> None:
    key = storage_key_for("learner-1", "My Final Report.pdf", millis=1700000000000)

    assert key == "artifacts/learner-1/1700000000000_My_Final_Report.pdf"


async def test_upload_stores_blob_and_record(db: AsyncSession, blob_store: LocalBlobStore) -> None:
    service = ArtifactService(db, blob_store)

    artifact = await service.upload(
        uploader=LEARNER,
        learner_id=TEST_LEARNER_ID,
        filename="Capstone Report.pdf",
        data=PDF_BYTES,
        competency_ids=["comp-python", "comp-python", "comp-data-analysis"],
    )

    assert artifact.file_type == ArtifactFileType.PDF
    assert artifact.file_name == "Capstone Report"
    assert artifact.file_size == len(PDF_BYTES)
    assert artifact.competency_ids == ("comp-python", "comp-data-analysis")
    assert artifact.file_url == f"http://test/files/{artifact.storage_key}"
    assert (blob_store.root / artifact.storage_key).read_bytes() == PDF_BYTES


async def test_educator_may_upload_for_learner_in_org(
    db: AsyncSession, blob_store: LocalBlobStore
) -> None:
    artifact = await ArtifactService(db, blob_store).upload(
        uploader=EDUCATOR,
        learner_id=TEST_LEARNER_ID,
        filename="photo.jpeg",
        data=b"\xff\xd8\xff",
        competency_ids=["comp-web-dev"],
        display_name="Team photo",
    )

    assert artifact.uploaded_by == EDUCATOR_ID
    assert artifact.file_type == ArtifactFileType.JPG
    assert artifact.file_name == "Team photo"


async def test_upload_rejects_oversized_file(db: AsyncSession, blob_store: LocalBlobStore) -> None:
    service = ArtifactService(db, blob_store, max_size_bytes=8)

    with pytest.raises(ArtifactValidationError, match="limit"):
        await service.upload(
            uploader=LEARNER,
            learner_id=TEST_LEARNER_ID,
            filename="big.pdf",
            data=b"x" * 9,
            competency_ids=["comp-python"],
        )

    assert not blob_store.root.exists()


@pytest.mark.parametrize(
    ("filename", "data", "competency_ids"),
    [
        ("notes.txt", PDF_BYTES, ["comp-python"]),
        ("empty.pdf", b"", ["comp-python"]),
        ("report.pdf", PDF_BYTES, []),
        ("report.pdf", PDF_BYTES, ["comp-unknown"]),
    ],
)
async def test_upload_validation(
    db: AsyncSession,
    blob_store: LocalBlobStore,
    filename: str,
    data: bytes,
    competency_ids: list[str],
) -> None:
    with pytest.raises(ArtifactValidationError):
        await ArtifactService(db, blob_store).upload(
            uploader=LEARNER,
            learner_id=TEST_LEARNER_ID,
            filename=filename,
            data=data,
            competency_ids=competency_ids,
        )


async def test_other_learner_cannot_upload(db: AsyncSession, blob_store: LocalBlobStore) -> None:
    stranger = User(user_id="someone-else", roles=["learner"], org_id=DEMO_ORG["id"])

    with pytest.raises(PermissionDeniedError):
        await ArtifactService(db, blob_store).upload(
            uploader=stranger,
            learner_id=TEST_LEARNER_ID,
            filename="report.pdf",
            data=PDF_BYTES,
            competency_ids=["comp-python"],
        )


async def test_list_filters_by_competency(db: AsyncSession, blob_store: LocalBlobStore) -> None:
    service = ArtifactService(db, blob_store)
    await service.upload(
        uploader=LEARNER,
        learner_id=TEST_LEARNER_ID,
        filename="a.pdf",
        data=PDF_BYTES,
        competency_ids=["comp-python"],
    )
    await service.upload(
        uploader=LEARNER,
        learner_id=TEST_LEARNER_ID,
        filename="b.png",
        data=b"\x89PNG",
        competency_ids=["comp-web-dev"],
    )

    everything = await service.list_for_learner(TEST_LEARNER_ID)
    python_only = await service.list_for_learner(TEST_LEARNER_ID, competency_id="comp-python")

    assert len(everything) == 2
    assert [artifact.file_name for artifact in python_only] == ["a"]


async def test_delete_is_owner_only_and_removes_blob(
    db: AsyncSession, blob_store: LocalBlobStore
) -> None:
    service = ArtifactService(db, blob_store)
    artifact = await service.upload(
        uploader=EDUCATOR,
        learner_id=TEST_LEARNER_ID,
        filename="report.pdf",
        data=PDF_BYTES,
        competency_ids=["comp-python"],
    )

    with pytest.raises(PermissionDeniedError):
        await service.delete(actor=EDUCATOR, artifact_id=artifact.id)

    await service.delete(actor=LEARNER, artifact_id=artifact.id)

    assert not (blob_store.root / artifact.storage_key).exists()
    assert await service.list_for_learner(TEST_LEARNER_ID) == []
    with pytest.raises(ArtifactNotFoundError):
        await service.delete(actor=LEARNER, artifact_id=artifact.id)


async def test_blob_store_rejects_keys_outside_root(blob_store: LocalBlobStore) -> None:
    with pytest.raises(BlobStoreError):
        await blob_store.put("../escape.pdf", PDF_BYTES, "application/pdf")


async def test_api_upload_and_list(async_client: AsyncClient) -> None:
    response = await async_client.post(
        "/artifacts",
        headers=auth_headers(),
        files={"file": ("evidence.pdf", PDF_BYTES, "application/pdf")},
        data={"competency_ids": ["comp-python", "comp-collaboration"]},
    )

    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["learner_id"] == TEST_LEARNER_ID
    assert body["competency_ids"] == ["comp-python", "comp-collaboration"]

    listed = await async_client.get(
        "/artifacts", headers=auth_headers(), params={"competency_id": "comp-collaboration"}
    )
    assert listed.status_code == status.HTTP_200_OK
    assert [item["id"] for item in listed.json()["artifacts"]] == [body["id"]]


async def test_api_upload_rejects_unsupported_type(async_client: AsyncClient) -> None:
    response = await async_client.post(
        "/artifacts",
        headers=auth_headers(),
        files={"file": ("notes.txt", b"plain text", "text/plain")},
        data={"competency_ids": ["comp-python"]},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST


async def test_api_learner_cannot_list_other_learner(async_client: AsyncClient) -> None:
    response = await async_client.get(
        "/artifacts", headers=auth_headers(), params={"learner_id": "someone-else"}
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN


async def test_api_delete_artifact(async_client: AsyncClient) -> None:
    created = await async_client.post(
        "/artifacts",
        headers=auth_headers(EDUCATOR_ID, Role.EDUCATOR),
        files={"file": ("clip.mp4", b"\x00\x00\x00\x18ftyp", "video/mp4")},
        data={"competency_ids": ["comp-collaboration"], "learner_id": TEST_LEARNER_ID},
    )
    artifact_id = created.json()["id"]

    response = await async_client.delete(f"/artifacts/{artifact_id}", headers=auth_headers())
    missing = await async_client.delete(f"/artifacts/{artifact_id}", headers=auth_headers())

    assert created.status_code == status.HTTP_201_CREATED
    assert response.status_code == status.HTTP_204_NO_CONTENT
    assert missing.status_code == status.HTTP_404_NOT_FOUND


async def test_failed_commit_removes_stored_blob(
    db: AsyncSession, monkeypatch: pytest.MonkeyPatch
) -> None:
    blob_store = AsyncMock()
    blob_store.put.return_value = "http://test/files/artifacts/x.pdf"
    monkeypatch.setattr(db, "commit", AsyncMock(side_effect=RuntimeError("database down")))

    with pytest.raises(RuntimeError):
        await ArtifactService(db, blob_store).upload(
            uploader=LEARNER,
            learner_id=TEST_LEARNER_ID,
            filename="report.pdf",
            data=PDF_BYTES,
            competency_ids=["comp-python"],
        )

    (key, data, content_type), _ = blob_store.put.await_args
    assert content_type == "application/pdf"
    blob_store.delete.assert_awaited_once_with(key)


async def test_list_requires_learner_or_educator_of_same_org(
    db: AsyncSession, blob_store: LocalBlobStore
) -> None:
    service = ArtifactService(db, blob_store)
    await service.upload(
        uploader=LEARNER,
        learner_id=TEST_LEARNER_ID,
        filename="report.pdf",
        data=PDF_BYTES,
        competency_ids=["comp-python"],
    )
    outsider = User(user_id="other-educator", roles=["educator"], org_id="other-org")

    assert len(await service.list_for_learner(TEST_LEARNER_ID, viewer=EDUCATOR)) == 1
    with pytest.raises(PermissionDeniedError):
        await service.list_for_learner(TEST_LEARNER_ID, viewer=outsider)
    with pytest.raises(LearnerNotFoundError):
        await service.list_for_learner("nobody", viewer=EDUCATOR)


async def test_api_educator_from_other_org_cannot_list_artifacts(
    async_client: AsyncClient,
) -> None:
    uploaded = await async_client.post(
        "/artifacts",
        headers=auth_headers(),
        files={"file": ("evidence.pdf", PDF_BYTES, "application/pdf")},
        data={"competency_ids": ["comp-python"]},
    )
    assert uploaded.status_code == status.HTTP_201_CREATED

    outsider = await async_client.get(
        "/artifacts",
        headers=auth_headers("other-educator", Role.EDUCATOR, org_id="other-org"),
        params={"learner_id": TEST_LEARNER_ID},
    )
    own_org = await async_client.get(
        "/artifacts",
        headers=auth_headers(EDUCATOR_ID, Role.EDUCATOR),
        params={"learner_id": TEST_LEARNER_ID},
    )

    assert outsider.status_code == status.HTTP_403_FORBIDDEN
    assert own_org.status_code == status.HTTP_200_OK
    assert len(own_org.json()["artifacts"]) == 1


async def test_api_rejects_oversized_upload(
    async_client: AsyncClient, blob_store: LocalBlobStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(get_settings(), "max_artifact_size_bytes", 8)

    response = await async_client.post(
        "/artifacts",
        headers=auth_headers(),
        files={"file": ("big.pdf", b"x" * 64, "application/pdf")},
        data={"competency_ids": ["comp-python"]},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "limit of 8 bytes" in response.json()["detail"]
    assert not blob_store.root.exists()
