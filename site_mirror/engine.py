# File: site_mirror/engine.py
"""site_mirror.engine: Orchestration layer для запуска зеркалирования из CLI и тестов."""

from __future__ import annotations

from typing import Optional, TextIO

from site_mirror.config import MirrorConfig
from site_mirror.crawler.crawler import Mirror
from site_mirror.crawler.models import ProgressSnapshot
from site_mirror.events import EventEmitter
from site_mirror.logger import attach_log_file, detach_handler, logger

__all__ = ["start_mirror"]


async def start_mirror(
    config: MirrorConfig,
    stream: Optional[TextIO] = None,
    *,
    emitter: Optional[EventEmitter] = None,
) -> ProgressSnapshot:
    """
    Готовит каталог вывода и файл журнала, запускает Mirror и возвращает
    итоговый ProgressSnapshot.

    Ошибки подготовки (каталог нельзя создать) фатальны: выдаётся событие
    ``error`` и исключение пробрасывается дальше.
    """
    emitter = emitter if emitter is not None else EventEmitter(stream)
    try:
        config.output_dir.mkdir(parents=True, exist_ok=True)
        handler = attach_log_file(config.resolved_log_file)
    except OSError as exc:
        logger.error("Cannot prepare output directory %s: %s", config.output_dir, exc)
        emitter.error(f"Cannot prepare output directory {config.output_dir}: {exc}")
        raise

    try:
        async with Mirror(config, emitter=emitter) as mirror:
            return await mirror.start()
    except Exception as exc:
        logger.error("Mirroring failed: %s", exc)
        emitter.error(str(exc))
        raise
    finally:
        detach_handler(handler)

