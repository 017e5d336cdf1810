# === FILE: site_mirror/cli.py ===
#!/usr/bin/env python3
"""
Точка входа для запуска SiteMirror через командную строку.

Команды:
  mirror [URL]   Зеркалировать сайт; события JSON Lines выводятся в stdout
  config [URL]   Показать итоговую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (необязательно)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Дополнительный файл для логов

Команда mirror опции:
  --output-dir DIR    Каталог для сохранения (default: downloaded_site)
  --max-retries INT   Число попыток на один URL
  --max-file-size INT Максимальный размер файла в байтах
  --timeout SEC       Таймаут одного запроса
  --insecure          Не проверять TLS-сертификаты

Дополнительно:
  --version, -v       Показать версию SiteMirror

Пример:
  site-mirror mirror https://example.com --output-dir ./site
"""
import asyncio
import sys
from pathlib import Path
from typing import Any, NoReturn, Optional

import click
from pydantic import ValidationError

from site_mirror import __version__
from site_mirror.config import MirrorConfig, load_config
from site_mirror.engine import start_mirror
from site_mirror.events import EventEmitter
from site_mirror.logger import init_logging

CONTEXT_SETTINGS = dict(help_option_names=["--help", "-h"])

INVALID_URL_MESSAGE = "Invalid URL. Please enter a valid URL."


def fail(message: str) -> NoReturn:
    """Emit an ``error`` event on stdout and exit with status 1."""
    EventEmitter(sys.stdout).error(message)
    sys.exit(1)


def build_config(config_path: Optional[Path], **overrides: Any) -> MirrorConfig:
    try:
        return load_config(config_path, **overrides)
    except ValidationError as e:
        if any(err["loc"][:1] == ("base_url",) for err in e.errors()):
            fail(INVALID_URL_MESSAGE)
        fail(f"Ошибка конфигурации: {e}")
    except Exception as e:
        fail(f"Ошибка загрузки конфигурации: {e}")


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='SiteMirror, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Путь к файлу конфигурации YAML/JSON.'
)
@click.option(
    '--log-level', 'log_level',
    default='INFO', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Уровень логирования'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Дополнительный файл логов (помимо <output-dir>/mirror.log)'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file):
    """Группа команд SiteMirror CLI."""
    init_logging(level=log_level, log_file=str(log_file) if log_file else None)
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config_path


@cli.command('mirror', context_settings=CONTEXT_SETTINGS)
@click.argument('url', required=False)
@click.option(
    '--output-dir', '-o', 'output_dir',
    default=None,
    type=click.Path(file_okay=False, path_type=Path),
    help='Каталог для сохранения файлов (default: downloaded_site)'
)
@click.option('--max-retries', 'max_retries', type=int, default=None, help='Число попыток на один URL')
@click.option('--max-file-size', 'max_file_size', type=int, default=None, help='Максимальный размер файла (байт)')
@click.option('--timeout', 'timeout', type=float, default=None, help='Таймаут одного запроса (секунд)')
@click.option('--insecure', is_flag=True, help='Отключить проверку TLS-сертификатов')
@click.pass_context
def mirror(ctx, url, output_dir, max_retries, max_file_size, timeout, insecure):
    """Зеркалировать сайт, начиная с URL."""
    cfg = build_config(
        ctx.obj['config_path'],
        base_url=url,
        output_dir=output_dir,
        max_retries=max_retries,
        max_file_size=max_file_size,
        timeout=timeout,
        verify_tls=False if insecure else None,
    )
    try:
        asyncio.run(start_mirror(cfg, sys.stdout))
    except Exception:
        # the engine has already emitted the error event
        sys.exit(1)


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.argument('url', required=False)
@click.pass_context
def show_config(ctx, url):
    """Показать текущую конфигурацию в JSON."""
    cfg = build_config(ctx.obj['config_path'], base_url=url)
    click.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()
