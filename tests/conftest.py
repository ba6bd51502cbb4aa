import pytest


@pytest.fixture(autouse=True)
def _isolated_logs(tmp_path, monkeypatch):
    """Keep JSON logs written during a test inside its tmp dir."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("ERROR_LOG_FILE", str(tmp_path / "logs" / "errors.log"))
    monkeypatch.delenv("OPS_ALERT_WEBHOOK", raising=False)
    for key in ("FUNDING_MAX_WAIT", "FUNDING_POLL_INTERVAL", "FUNDING_FEE_RESERVE"):
        monkeypatch.delenv(key, raising=False)
