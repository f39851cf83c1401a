import pytest

from app.exceptions import UploadRejected
from app.storage.blob import discard, store_syllabus, validate_syllabus

from factories import PDF_BYTES

MAX = 5 * 1024 * 1024


def test_accepts_pdf() -> None:
    validate_syllabus(PDF_BYTES, "application/pdf", MAX)
    validate_syllabus(PDF_BYTES, "application/pdf; charset=binary", MAX)


@pytest.mark.parametrize(
    "data, content_type",
    [
        (PDF_BYTES, "image/png"),
        (PDF_BYTES, None),
        (b"", "application/pdf"),
        (b"PK\x03\x04 not a pdf", "application/pdf"),
        (b"%PDF" + b"0" * MAX, "application/pdf"),
    ],
)
def test_rejects_bad_uploads(data, content_type) -> None:
    with pytest.raises(UploadRejected):
        validate_syllabus(data, content_type, MAX)


@pytest.mark.asyncio
async def test_store_syllabus_validates_before_put(blob_store) -> None:
    with pytest.raises(UploadRejected):
        await store_syllabus(
            blob_store, b"hello", content_type="text/plain", filename="x.txt", max_bytes=MAX
        )
    assert blob_store.blobs == {}

    ref = await store_syllabus(
        blob_store, PDF_BYTES, content_type="application/pdf", filename="plan.pdf", max_bytes=MAX
    )
    assert blob_store.blobs[ref] == PDF_BYTES


@pytest.mark.asyncio
async def test_discard_swallows_store_errors() -> None:
    class Broken:
        async def delete(self, ref: str) -> None:
            raise RuntimeError("bucket gone")

    await discard(Broken(), "syllabi/1_plan.pdf")
    await discard(Broken(), None)
