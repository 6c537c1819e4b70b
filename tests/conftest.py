"""
Pytest fixtures for ItemScan tests.
"""
import os
import tempfile
from io import BytesIO
from unittest.mock import AsyncMock, MagicMock
import pytest
from fastapi.testclient import TestClient

# Set test environment variables BEFORE importing app
os.environ['ITEMSCAN_DATA_ROOT'] = tempfile.mkdtemp()
os.environ['ITEMSCAN_MAX_IMAGE_MB'] = '2'
os.environ['ITEMSCAN_SUMMARIZER_ENABLED'] = 'false'
os.environ['ITEMSCAN_GOOGLE_VISION_LIMIT'] = '1000'
os.environ['ITEMSCAN_AMAZON_REKOGNITION_LIMIT'] = '1000'
os.environ['USE_DATABASE'] = 'false'

from itemscan.main import app
from itemscan.api.schemas import AnalysisOutcome, DetectedItem
from itemscan.services.storage.kv_store import InMemoryKeyValueStore
from itemscan.services.usage_tracking import UsageTracker


@pytest.fixture(scope="function")
def client():
    """FastAPI test client; dependency overrides are cleared afterwards."""
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def memory_store():
    return InMemoryKeyValueStore()


@pytest.fixture
def tracker(memory_store):
    return UsageTracker(memory_store)


@pytest.fixture
def make_item():
    """Factory for DetectedItems."""
    def _make(name="Jacket", confidence=0.9, category="Clothing", item_id=None):
        return DetectedItem(
            id=item_id or f"id_{name.lower()}_{confidence}",
            name=name,
            confidence=confidence,
            category=category,
        )
    return _make


@pytest.fixture
def success_outcome(make_item):
    def _make(*items, processing_time=1.0):
        return AnalysisOutcome(
            success=True,
            items=list(items) or [make_item()],
            processing_time=processing_time,
        )
    return _make


@pytest.fixture
def failed_outcome():
    def _make(error="API Error"):
        return AnalysisOutcome(success=False, items=[], processing_time=0.0, error=error)
    return _make


@pytest.fixture
def mock_analyzer():
    """Factory for analyzer doubles exposing an async analyze_image."""
    def _make(result=None, side_effect=None):
        analyzer = MagicMock()
        analyzer.analyze_image = AsyncMock(return_value=result, side_effect=side_effect)
        return analyzer
    return _make


@pytest.fixture
def mock_summarizer():
    def _make(result=None, side_effect=None):
        summarizer = MagicMock()
        summarizer.summarize = AsyncMock(return_value=result, side_effect=side_effect)
        return summarizer
    return _make


@pytest.fixture
def sample_image_bytes():
    """Generate a minimal valid PNG image for testing."""
    from PIL import Image

    img = Image.new('RGB', (100, 100), color='red')
    buf = BytesIO()
    img.save(buf, format='PNG')
    buf.seek(0)
    return buf.read()


@pytest.fixture
def sample_image_path(tmp_path, sample_image_bytes):
    path = tmp_path / "photo.png"
    path.write_bytes(sample_image_bytes)
    return path
