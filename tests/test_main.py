from pathlib import Path
from typing import Any

import pytest

from distserve import __main__ as cli
from distserve import config


def test_main_passes_options(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
	calls: list[dict[str, Any]] = []
	monkeypatch.setattr(cli, "run", lambda **kwargs: calls.append(kwargs))
	cli.main([str(tmp_path), "--port", "8081", "--host", "127.0.0.1"])
	assert calls == [{"root": str(tmp_path), "host": "127.0.0.1", "port": 8081}]


def test_main_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
	calls: list[dict[str, Any]] = []
	monkeypatch.setattr(cli, "run", lambda **kwargs: calls.append(kwargs))
	cli.main([])
	assert calls == [{"root": config.ROOT, "host": config.HOST, "port": config.PORT}]


# EOF
