"""
Pytest configuration for bulk ad creator tests.
"""
import io
import pytest
from unittest.mock import AsyncMock, Mock
from PIL import Image

from bulkads.config import JobConfig, MediaConfig
from bulkads.jobs.orchestrator import BulkCreationOrchestrator
from bulkads.jobs.progress import InMemoryProgressPublisher
from bulkads.jobs.store import JobStore
from bulkads.media.store import MediaStore
from bulkads.platform.client import RemotePlatformClient
from bulkads.templates.models import AdCopy, Budget, Delivery, TemplateCreate, Targeting
from bulkads.templates.store import TemplateStore

def make_png(width: int = 4, height: int = 3) -> bytes:
    """Create a small PNG image."""
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color=(255, 0, 0)).save(buffer, format="PNG")
    return buffer.getvalue()

@pytest.fixture
def png_bytes():
    return make_png()

@pytest.fixture
def mock_client():
    """Platform client whose calls succeed with predictable ids."""
    client = Mock(spec=RemotePlatformClient)
    client.is_ready.return_value = True
    client.create_campaign = AsyncMock(return_value="camp1")
    client.create_ad_set = AsyncMock(return_value="as1")
    client.create_creative = AsyncMock(return_value="cr1")
    client.create_ad = AsyncMock(side_effect=lambda ad_set_id, name, *args, **kwargs: f"ad-{name}")
    client.resolve_media_token = AsyncMock(side_effect=lambda media: f"hash-{media.id}")
    client.generate_preview = AsyncMock(return_value="<iframe></iframe>")
    return client

@pytest.fixture
def template_store():
    return TemplateStore()

@pytest.fixture
def template(template_store):
    return template_store.create(TemplateCreate(
        name="Summer Sale",
        description="Seasonal promotion",
        ad_copy=AdCopy(headline="Summer Sale", primary_text="Everything 20% off", call_to_action="SHOP_NOW"),
        targeting=Targeting(age_min=18, age_max=45, locations=["US", "CA"]),
        budget=Budget(amount=25),
        delivery=Delivery(cost_per_result=15, cost_per_result_currency="EUR")
    ))

@pytest.fixture
def media_store(tmp_path):
    return MediaStore(MediaConfig(upload_dir=str(tmp_path / "uploads")))

@pytest.fixture
def media_ids(media_store, png_bytes):
    """IDs of three stored images."""
    return [
        media_store.save(f"image{i}.png", png_bytes, "image/png").id
        for i in range(3)
    ]

@pytest.fixture
def job_store():
    return JobStore()

@pytest.fixture
def progress():
    return InMemoryProgressPublisher()

@pytest.fixture
def job_config():
    return JobConfig(call_timeout=0.5)

@pytest.fixture
def orchestrator(mock_client, template_store, media_store, job_store, progress, job_config):
    return BulkCreationOrchestrator(
        client=mock_client,
        templates=template_store,
        media=media_store,
        jobs=job_store,
        publisher=progress,
        config=job_config
    )
