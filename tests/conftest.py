from unittest.mock import MagicMock

import pytest

from config.settings import Settings
from etl.client import FeishuClient
from storage.bucket import ObjectStorage


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def json(self):
        if self.payload is None:
            raise ValueError("No JSON object could be decoded")
        return self.payload


class FakeSession:
    """Routes requests by (method, url fragment) to canned handlers."""

    def __init__(self, routes=None):
        self.routes = list(routes or [])
        self.headers = {}
        self.calls = []
        self.closed = False

    def route(self, method, fragment, handler):
        self.routes.insert(0, (method, fragment, handler))

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        for route_method, fragment, handler in self.routes:
            if route_method == method and fragment in url:
                result = handler(url, kwargs) if callable(handler) else handler
                if isinstance(result, Exception):
                    raise result
                if isinstance(result, FakeResponse):
                    return result
                return FakeResponse(result)
        return FakeResponse({"code": 404, "msg": "not found"}, status_code=404)

    def close(self):
        self.closed = True


def feishu_routes(sheets, grids, token="t-123"):
    """
    Build routes for a fake Feishu API.

    Args:
        sheets: {title: sheet_id}
        grids: {sheet_id: values}
    """

    def values_for(cell_range):
        sheet_id = cell_range.split("!")[0]
        return grids.get(sheet_id, [])

    def batch(url, kwargs):
        ranges = kwargs["params"]["ranges"].split(",")
        return {
            "code": 0,
            "data": {
                "valueRanges": [
                    {"range": r, "values": values_for(r)} for r in ranges
                ]
            },
        }

    def single(url, kwargs):
        cell_range = url.rsplit("/values/", 1)[1]
        return {
            "code": 0,
            "data": {"valueRange": {"range": cell_range, "values": values_for(cell_range)}},
        }

    return [
        ("POST", "/auth/v3/tenant_access_token/internal",
         {"code": 0, "msg": "ok", "tenant_access_token": token, "expire": 7200}),
        ("GET", "/sheets/query", {
            "code": 0,
            "data": {"sheets": [{"title": t, "sheet_id": s} for t, s in sheets.items()]},
        }),
        ("GET", "/values_batch_get", batch),
        ("GET", "/values/", single),
    ]


SHEETS = {
    "Courses": "sh1",
    "Characters": "sh2",
    "Words": "sh3",
    "Sentences": "sh4",
}

GRIDS = {
    "sh1": [
        ["id", "title", "icon"],
        ["c1", "第一课", {"type": "url", "text": "icon", "link": "https://cdn.example.com/c1.png"}],
        ["c2", "第二课"],
        ["", "", ""],
    ],
    "sh2": [
        ["id", "character", "pinyin"],
        ["ch1", "你", "nǐ"],
        ["ch2", "好", "hǎo"],
    ],
    "sh3": [
        ["id", "word"],
        ["w1", "你好"],
    ],
    "sh4": [
        ["id", "sentence", ""],
        ["s1", "你好吗？", "note"],
        [None, None, "only in unnamed column"],
    ],
}


@pytest.fixture
def env(tmp_path):
    return {
        "FEISHU_APP_ID": "cli_app",
        "FEISHU_APP_SECRET": "secret",
        "FEISHU_SPREADSHEET_TOKEN": "shtcn123",
        "OSS_REGION": "oss-cn-hangzhou",
        "OSS_ACCESS_KEY_ID": "ak",
        "OSS_ACCESS_KEY_SECRET": "sk",
        "OSS_BUCKET": "app-bucket",
        "OUTPUT_FILE": str(tmp_path / "data" / "output" / "app-data.json"),
    }


@pytest.fixture
def settings(env):
    return Settings(env=env)


@pytest.fixture
def fake_session():
    return FakeSession(feishu_routes(SHEETS, GRIDS))


@pytest.fixture
def client(fake_session):
    return FeishuClient(session=fake_session)


@pytest.fixture
def s3_client():
    return MagicMock()


@pytest.fixture
def storage(s3_client):
    return ObjectStorage(
        bucket="app-bucket",
        region="oss-cn-hangzhou",
        access_key_id="ak",
        access_key_secret="sk",
        client=s3_client,
    )
