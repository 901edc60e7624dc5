import pytest

from fakes import RICK_ID, FakeDataClient, make_metadata, video_item


@pytest.fixture
def data_client():
    return FakeDataClient(videos={RICK_ID: [video_item()]})


@pytest.fixture
def rick_metadata():
    return make_metadata()
