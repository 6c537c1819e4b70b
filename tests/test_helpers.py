"""
Tests for the recognition helpers (categories, image loading, Rekognition, Google Vision).
"""
import asyncio
import os
import time
from io import BytesIO
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
import pytest
from PIL import Image
from botocore.exceptions import ClientError
from google.api_core.exceptions import ServiceUnavailable

from itemscan.api.schemas import ServiceType
from itemscan.services.helpers import categorize_item
from itemscan.services.helpers import google_vision_helper, rekognition_helper
from itemscan.services.helpers.categories import apply_category_filtering, relevance_class
from itemscan.services.helpers.google_vision_helper import GoogleVisionHelper, transform_annotations
from itemscan.services.helpers.image_loader import (
    ImageTooLarge,
    load_image_bytes,
    resolve_image_path,
    shrink_to_limit,
)
from itemscan.services.helpers.rekognition_helper import (
    RekognitionHelper,
    RekognitionUnavailable,
    transform_labels,
)


@pytest.mark.parametrize("label, expected", [
    ("Laptop", "Electronics"),
    ("Denim Jacket", "Clothing"),
    ("Running Shoe", "Shoes"),
    ("Leather Handbag", "Accessories"),
    ("Book", "Books"),
    ("Sofa", "Home"),
    ("Zebra", "Other"),
    ("", "Other"),
])
def test_categorize_item(label, expected):
    assert categorize_item(label) == expected


def test_resolve_file_uri(tmp_path):
    path = tmp_path / "my photo.png"
    assert resolve_image_path(f"file://{tmp_path}/my%20photo.png") == path
    assert resolve_image_path(str(path)) == path


def test_load_image_bytes_missing(tmp_path):
    with pytest.raises(FileNotFoundError, match="Image not found"):
        load_image_bytes(str(tmp_path / "nope.jpg"))


def test_load_image_bytes(sample_image_path, sample_image_bytes):
    assert load_image_bytes(f"file://{sample_image_path}") == sample_image_bytes


def _noise_png(size=(500, 500)) -> bytes:
    img = Image.frombytes("RGB", size, os.urandom(size[0] * size[1] * 3))
    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def test_shrink_returns_small_images_untouched(sample_image_bytes):
    assert shrink_to_limit(sample_image_bytes, 10 * 1024 * 1024) is sample_image_bytes


def test_shrink_reencodes_large_image():
    original = _noise_png()
    limit = 200_000

    shrunk = shrink_to_limit(original, limit)

    assert len(shrunk) <= limit
    assert Image.open(BytesIO(shrunk)).format == "JPEG"


def test_shrink_gives_up_on_impossible_limit():
    with pytest.raises(ImageTooLarge):
        shrink_to_limit(_noise_png((100, 100)), 10)


def test_shrink_rejects_undecodable_bytes():
    with pytest.raises(ImageTooLarge, match="Cannot re-encode"):
        shrink_to_limit(b"x" * 100, 10)


def test_transform_labels():
    items = transform_labels([
        {
            "Name": "Laptop",
            "Confidence": 87.4,
            "Instances": [{"BoundingBox": {"Left": 0.1, "Top": 0.2, "Width": 0.3, "Height": 0.4}}],
        },
        {"Name": "Furniture", "Confidence": 100.0, "Instances": []},
    ])

    laptop, furniture = items
    assert laptop.id.startswith("amazon_")
    assert laptop.confidence == pytest.approx(0.874)
    assert laptop.category == "Electronics"
    assert laptop.description == "Laptop detected with 87% confidence"
    assert laptop.bounding_box.x == 0.1
    assert laptop.bounding_box.height == 0.4
    assert furniture.confidence == 1.0
    assert furniture.category == "Home"
    assert furniture.bounding_box is None
    assert laptop.id != furniture.id


def _fake_session(client):
    """aioboto3-like session whose client() is an async context manager."""
    session = MagicMock()
    cm = MagicMock()
    cm.__aenter__ = AsyncMock(return_value=client)
    cm.__aexit__ = AsyncMock(return_value=False)
    session.client.return_value = cm
    return session


@pytest.mark.asyncio
async def test_rekognition_analyze_image(sample_image_path, sample_image_bytes):
    client = MagicMock()
    client.detect_labels = AsyncMock(return_value={
        "Labels": [{"Name": "Jacket", "Confidence": 92.0, "Instances": []}],
    })
    session = _fake_session(client)
    helper = RekognitionHelper(region="eu-west-1", max_labels=5, min_confidence=70, session=session)

    outcome = await helper.analyze_image(str(sample_image_path))

    assert outcome.success is True
    assert [i.name for i in outcome.items] == ["Jacket"]
    assert outcome.items[0].category == "Clothing"
    assert outcome.processing_time >= 0
    session.client.assert_called_once_with("rekognition", region_name="eu-west-1")
    client.detect_labels.assert_awaited_once_with(
        Image={"Bytes": sample_image_bytes},
        MaxLabels=5,
        MinConfidence=70,
    )
    assert helper.service == ServiceType.AMAZON_REKOGNITION


@pytest.mark.asyncio
async def test_rekognition_client_error_becomes_failed_outcome(sample_image_path):
    client = MagicMock()
    client.detect_labels = AsyncMock(side_effect=ClientError(
        {"Error": {"Code": "InvalidImageFormatException", "Message": "Request has invalid image format"}},
        "DetectLabels",
    ))
    helper = RekognitionHelper(region="us-east-1", session=_fake_session(client))

    outcome = await helper.analyze_image(str(sample_image_path))

    assert outcome.success is False
    assert outcome.items == []
    assert "invalid image format" in outcome.error


@pytest.mark.asyncio
async def test_rekognition_image_too_large(sample_image_path):
    client = MagicMock()
    client.detect_labels = AsyncMock()
    helper = RekognitionHelper(region="us-east-1", session=_fake_session(client))
    helper.max_image_bytes = 10

    outcome = await helper.analyze_image(str(sample_image_path))

    assert outcome.success is False
    assert outcome.error.startswith("Image too large for Amazon Rekognition")
    assert "Google Vision will still analyze this image" in outcome.error
    client.detect_labels.assert_not_awaited()


@pytest.mark.asyncio
async def test_rekognition_without_region_raises(sample_image_path):
    helper = RekognitionHelper(session=_fake_session(MagicMock()))
    helper.region = ""

    with pytest.raises(RekognitionUnavailable):
        await helper.analyze_image(str(sample_image_path))


@pytest.mark.asyncio
async def test_rekognition_missing_image_raises(tmp_path):
    helper = RekognitionHelper(region="us-east-1", session=_fake_session(MagicMock()))

    with pytest.raises(FileNotFoundError):
        await helper.analyze_image(str(tmp_path / "missing.jpg"))


def _vertex(x, y):
    return SimpleNamespace(x=x, y=y)


def _vision_response(labels=(), objects=(), error_message=""):
    return SimpleNamespace(
        label_annotations=[SimpleNamespace(description=d, score=s) for d, s in labels],
        localized_object_annotations=list(objects),
        error=SimpleNamespace(message=error_message),
    )


def test_transform_annotations_filters_and_locates():
    shoe = SimpleNamespace(
        name="Shoe",
        score=0.8,
        bounding_poly=SimpleNamespace(normalized_vertices=[
            _vertex(0.1, 0.2), _vertex(0.5, 0.2), _vertex(0.5, 0.9), _vertex(0.1, 0.9),
        ]),
    )
    response = _vision_response(labels=[("Jacket", 0.92), ("Blue", 0.6), ("Sleeve", 0.4)], objects=[shoe])

    items = transform_annotations(response, min_score=0.6)

    assert [i.name for i in items] == ["Jacket", "Shoe"]
    jacket, located = items
    assert jacket.id.startswith("google_")
    assert jacket.category == "Clothing"
    assert jacket.bounding_box is None
    assert located.category == "Shoes"
    assert located.bounding_box.x == pytest.approx(0.1)
    assert located.bounding_box.y == pytest.approx(0.2)
    assert located.bounding_box.width == pytest.approx(0.4)
    assert located.bounding_box.height == pytest.approx(0.7)


def _vision_client(response=None, side_effect=None):
    client = MagicMock()
    client.batch_annotate_images = AsyncMock(
        return_value=SimpleNamespace(responses=[response]) if response is not None else None,
        side_effect=side_effect,
    )
    return client


@pytest.mark.asyncio
async def test_google_vision_analyze_image(sample_image_path):
    client = _vision_client(_vision_response(labels=[("Laptop", 0.97)]))
    helper = GoogleVisionHelper(max_results=5, min_score=0.5, client=client)

    outcome = await helper.analyze_image(f"file://{sample_image_path}")

    assert outcome.success is True
    assert outcome.error is None
    assert [i.name for i in outcome.items] == ["Laptop"]
    client.batch_annotate_images.assert_awaited_once()
    request = client.batch_annotate_images.await_args.kwargs["requests"][0]
    assert [f.max_results for f in request.features] == [5, 5]


@pytest.mark.asyncio
async def test_google_vision_no_confident_items(sample_image_path):
    client = _vision_client(_vision_response(labels=[("Texture", 0.3)]))
    helper = GoogleVisionHelper(min_score=0.6, client=client)

    outcome = await helper.analyze_image(str(sample_image_path))

    assert outcome.success is True
    assert outcome.items == []
    assert outcome.error == "No items detected with sufficient confidence"


@pytest.mark.asyncio
async def test_google_vision_response_error(sample_image_path):
    client = _vision_client(_vision_response(error_message="Bad image data."))
    helper = GoogleVisionHelper(client=client)

    outcome = await helper.analyze_image(str(sample_image_path))

    assert outcome.success is False
    assert outcome.error == "Google Cloud Vision API error: Bad image data."


@pytest.mark.asyncio
async def test_google_vision_api_exception(sample_image_path):
    client = _vision_client(side_effect=ServiceUnavailable("backend unavailable"))
    helper = GoogleVisionHelper(client=client)

    outcome = await helper.analyze_image(str(sample_image_path))

    assert outcome.success is False
    assert outcome.error.startswith("Google Cloud Vision API error:")
    assert "backend unavailable" in outcome.error


@pytest.mark.parametrize("label, expected", [
    ("Jacket", "objects_of_interest"),
    ("Teddy Bear", "objects_of_interest"),
    ("Person", "objects_to_ignore"),
    ("Sleeve", "objects_to_ignore"),
    ("Wooden Table", "objects_to_ignore"),
    ("Widget", "default"),
])
def test_relevance_class(label, expected):
    assert relevance_class(label) == expected


def test_apply_category_filtering(make_item):
    items = [
        make_item("Jacket", 0.65),
        make_item("Person", 0.79, "Other"),
        make_item("Hand", 0.85, "Other"),
        make_item("Widget", 0.69, "Other"),
        make_item("Gizmo", 0.7, "Other"),
    ]

    kept = apply_category_filtering(items)

    assert [i.name for i in kept] == ["Jacket", "Hand", "Gizmo"]


@pytest.mark.asyncio
async def test_rekognition_drops_body_parts_and_background(sample_image_path):
    client = MagicMock()
    client.detect_labels = AsyncMock(return_value={"Labels": [
        {"Name": "Person", "Confidence": 75.0},
        {"Name": "Sleeve", "Confidence": 70.0},
        {"Name": "Coat", "Confidence": 65.0},
        {"Name": "Floor", "Confidence": 62.0},
    ]})
    helper = RekognitionHelper(region="us-east-1", session=_fake_session(client))

    outcome = await helper.analyze_image(str(sample_image_path))

    assert outcome.success is True
    assert [i.name for i in outcome.items] == ["Coat"]


@pytest.mark.asyncio
async def test_google_vision_only_background_counts_as_no_items(sample_image_path):
    client = _vision_client(_vision_response(labels=[("Hand", 0.75), ("Wall", 0.7)]))
    helper = GoogleVisionHelper(min_score=0.6, client=client)

    outcome = await helper.analyze_image(str(sample_image_path))

    assert outcome.success is True
    assert outcome.items == []
    assert outcome.error == "No items detected with sufficient confidence"


async def _max_loop_stall(coro) -> float:
    """Run coro next to a 10ms ticker and return the longest gap between ticks."""
    gaps = []
    done = asyncio.Event()

    async def ticker():
        last = time.perf_counter()
        while not done.is_set():
            await asyncio.sleep(0.01)
            now = time.perf_counter()
            gaps.append(now - last)
            last = now

    task = asyncio.create_task(ticker())
    try:
        await coro
    finally:
        done.set()
        await task
    return max(gaps, default=0.0)


@pytest.mark.asyncio
async def test_rekognition_shrinks_image_off_the_event_loop(sample_image_path, monkeypatch):
    def slow_shrink(image_bytes, max_bytes):
        time.sleep(0.3)
        return image_bytes

    monkeypatch.setattr(rekognition_helper, "shrink_to_limit", slow_shrink)
    client = MagicMock()
    client.detect_labels = AsyncMock(return_value={"Labels": []})
    helper = RekognitionHelper(region="us-east-1", session=_fake_session(client))

    assert await _max_loop_stall(helper.analyze_image(str(sample_image_path))) < 0.15


@pytest.mark.asyncio
async def test_rekognition_real_reencode_keeps_loop_responsive(tmp_path):
    path = tmp_path / "large.png"
    path.write_bytes(_noise_png((1200, 1200)))
    client = MagicMock()
    client.detect_labels = AsyncMock(return_value={"Labels": []})
    helper = RekognitionHelper(region="us-east-1", max_image_mb=1, session=_fake_session(client))

    stall = await _max_loop_stall(helper.analyze_image(str(path)))

    assert stall < 0.1
    sent = client.detect_labels.await_args.kwargs["Image"]["Bytes"]
    assert len(sent) <= 1024 * 1024


@pytest.mark.asyncio
async def test_google_vision_reads_image_off_the_event_loop(sample_image_path, sample_image_bytes, monkeypatch):
    def slow_load(image_ref):
        time.sleep(0.3)
        return sample_image_bytes

    monkeypatch.setattr(google_vision_helper, "load_image_bytes", slow_load)
    helper = GoogleVisionHelper(client=_vision_client(_vision_response(labels=[("Laptop", 0.9)])))

    assert await _max_loop_stall(helper.analyze_image(str(sample_image_path))) < 0.15


@pytest.mark.asyncio
async def test_google_vision_close_releases_channel():
    client = MagicMock()
    client.transport.close = AsyncMock()
    helper = GoogleVisionHelper(client=client)

    await helper.close()
    await helper.close()

    client.transport.close.assert_awaited_once()
