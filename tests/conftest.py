from __future__ import annotations

import os
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from app.config import AppSettings, CanvasSettings
from domain.models import LayoutOptions, PerformanceConfig


def _clear_schema_canvas_env() -> None:
    for key in list(os.environ):
        if key.startswith("SCHEMA_CANVAS_"):
            os.environ.pop(key, None)


_clear_schema_canvas_env()


@pytest.fixture(autouse=True)
def clear_schema_canvas_env() -> Generator[None, None, None]:
    _clear_schema_canvas_env()
    yield
    _clear_schema_canvas_env()


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    # Keeps a developer's config/schema_canvas.yaml out of the tests.
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def performance_config() -> PerformanceConfig:
    return PerformanceConfig(
        enable_lazy_rendering=True,
        max_nodes_in_view=100,
        viewport_buffer=200,
        enable_grouping=False,
        enable_background_layout=True,
    )


@pytest.fixture
def performance_config_factory(
    performance_config: PerformanceConfig,
) -> Callable[..., PerformanceConfig]:
    def _factory(**overrides: object) -> PerformanceConfig:
        return performance_config.model_copy(update=overrides)

    return _factory


@pytest.fixture
def app_settings(performance_config: PerformanceConfig) -> AppSettings:
    return AppSettings(
        title="Test Canvas",
        layout=LayoutOptions(),
        performance=performance_config,
        canvas=CanvasSettings(width=1200, height=800),
        max_sessions=4,
    )


@pytest.fixture
def app_settings_factory(app_settings: AppSettings) -> Callable[..., AppSettings]:
    def _factory(**overrides: object) -> AppSettings:
        return app_settings.model_copy(update=overrides)

    return _factory
