# === FILE: site_mirror/config.py ===
"""
Модуль для загрузки и валидации конфигурации SiteMirror.
Используется Pydantic для описания схемы и проверки данных.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, FrozenSet, Optional, Tuple, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    field_validator,
)

DEFAULT_EXTENSIONS: FrozenSet[str] = frozenset(
    {"html", "css", "js", "jpg", "jpeg", "png", "gif", "svg", "woff", "woff2"}
)

DEFAULT_USER_AGENTS: Tuple[str, ...] = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:89.0) Gecko/20100101 Firefox/89.0",
)


class MirrorConfig(BaseModel):
    """Конфигурация для одного запуска зеркалирования."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    base_url: HttpUrl = Field(..., description="Корневой URL сайта.")
    output_dir: Path = Field(Path("downloaded_site"), description="Каталог для сохранённых файлов.")
    max_file_size: int = Field(10 * 1024 * 1024, gt=0, description="Максимальный размер файла (байт).")
    allowed_extensions: FrozenSet[str] = Field(
        DEFAULT_EXTENSIONS, description="Расширения ресурсов, которые сохраняются."
    )
    max_retries: int = Field(3, ge=1, description="Общее число попыток на один URL.")
    retry_delay: float = Field(1.0, ge=0, description="Пауза между попытками (секунд).")
    timeout: float = Field(30.0, gt=0, description="Таймаут на один запрос (секунд).")
    max_redirects: int = Field(3, ge=1, description="Максимум переходов по редиректам.")
    verify_tls: bool = Field(True, description="Проверять TLS-сертификаты.")
    user_agents: Tuple[str, ...] = Field(DEFAULT_USER_AGENTS, min_length=1, description="Пул User-Agent.")
    log_file: Optional[Path] = Field(None, description="Файл журнала; по умолчанию <output_dir>/mirror.log.")

    @field_validator("base_url", mode="before")
    def _strip_whitespace(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("allowed_extensions", mode="before")
    def _normalize_extensions(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.replace(",", " ").split()
        if isinstance(v, (list, tuple, set, frozenset)):
            return frozenset(str(ext).strip().lstrip(".").lower() for ext in v if str(ext).strip())
        return v

    @property
    def resolved_log_file(self) -> Path:
        return self.log_file if self.log_file is not None else self.output_dir / "mirror.log"


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None] = None, **overrides: Any) -> MirrorConfig:
    """
    Читает YAML или JSON (если указан путь), накладывает overrides
    (значения None игнорируются) и возвращает проверенный MirrorConfig.
    """
    data: dict[str, Any] = {}
    if path is not None:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

        suffix = path_obj.suffix.lower()
        if suffix in (".yaml", ".yml"):
            data = _read_yaml(path_obj)
        elif suffix == ".json":
            data = _read_json(path_obj)
        else:
            raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")

    data.update({k: v for k, v in overrides.items() if v is not None})

    return MirrorConfig(**data)


__all__ = ["MirrorConfig", "load_config", "DEFAULT_EXTENSIONS", "DEFAULT_USER_AGENTS"]
