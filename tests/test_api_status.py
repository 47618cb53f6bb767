from fastapi.testclient import TestClient

from xmltail import __version__
from xmltail.api import create_app
from xmltail.consumer import StatusConsumer
from xmltail.models import LogRecord


def _consumer_with_records(count):
  consumer = StatusConsumer()
  for i in range(count):
    consumer.handle(LogRecord(millis=i, method="run", message=f"m{i}", clazz="Engine"))
  return consumer


def test_status_endpoint_healthy():
  consumer = _consumer_with_records(2)
  consumer.set_current_file("/logs/a.xml")
  consumer.set_working(True)
  client = TestClient(create_app(consumer))

  resp = client.get("/status")
  assert resp.status_code == 200
  data = resp.json()
  assert data["status"] == "healthy"
  assert data["service_name"] == "xmltail"
  assert data["version"] == __version__
  assert data["current_file"] == "/logs/a.xml"
  assert data["working"] is True
  assert data["records_forwarded"] == 2
  assert data["failure"] is None


def test_status_endpoint_reports_failure():
  client = TestClient(create_app(StatusConsumer(), failure_source=lambda: "tailer: TailIOError: boom"))

  data = client.get("/status").json()
  assert data["status"] == "failed"
  assert data["failure"] == "tailer: TailIOError: boom"


def test_records_endpoint_returns_newest_last():
  client = TestClient(create_app(_consumer_with_records(5)))

  resp = client.get("/records", params={"limit": 2})
  assert resp.status_code == 200
  records = resp.json()["records"]
  assert [r["message"] for r in records] == ["m3", "m4"]
  assert records[0]["class"] == "Engine"


def test_records_endpoint_default_limit():
  client = TestClient(create_app(_consumer_with_records(60)))
  assert len(client.get("/records").json()["records"]) == 50


def test_records_endpoint_rejects_bad_limit():
  client = TestClient(create_app(StatusConsumer()))
  assert client.get("/records", params={"limit": 0}).status_code == 422
  assert client.get("/records", params={"limit": 1001}).status_code == 422
