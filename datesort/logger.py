"""
Модуль для настройки и управления логированием приложения.

Обеспечивает централизованную настройку логирования с цветным выводом
в консоль и необязательным файлом лога с ротацией.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional
from datetime import datetime

try:
    from .config_loader import LoggingConfig
except ImportError:
    from config_loader import LoggingConfig


LOGGER_NAME = 'datesort'
LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class ColoredFormatter(logging.Formatter):
    """Форматтер с цветным выводом для консоли."""

    # Цветовые коды ANSI
    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
        'RESET': '\033[0m'        # Reset
    }

    def format(self, record):
        """Форматирует запись лога с цветом."""
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"
        try:
            return super().format(record)
        finally:
            # Запись разделяется с файловым обработчиком
            record.levelname = levelname


class DateSortLogger:
    """Класс для управления логированием приложения."""

    def __init__(self, config: LoggingConfig):
        """
        Инициализация логгера.

        Args:
            config: Конфигурация логирования
        """
        self.config = config
        self.logger: Optional[logging.Logger] = None
        self._setup_logger()

    def _setup_logger(self) -> None:
        """Настраивает логгер с консольным и, при необходимости, файловым выводом."""
        level = getattr(logging, self.config.level.upper())

        self.logger = logging.getLogger(LOGGER_NAME)
        self.logger.setLevel(level)

        # Очищаем существующие обработчики
        for handler in self.logger.handlers[:]:
            handler.close()
            self.logger.removeHandler(handler)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(ColoredFormatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        console_handler.setLevel(level)
        self.logger.addHandler(console_handler)

        if self.config.log_file is not None:
            log_file_path = Path(self.config.log_file)
            log_file_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.handlers.RotatingFileHandler(
                filename=log_file_path,
                maxBytes=self.config.max_log_size * 1024 * 1024,  # MB -> байты
                backupCount=self.config.backup_count,
                encoding='utf-8'
            )
            file_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
            file_handler.setLevel(level)
            self.logger.addHandler(file_handler)

        # Предотвращаем дублирование сообщений
        self.logger.propagate = False

    def get_logger(self) -> logging.Logger:
        """
        Возвращает настроенный логгер.

        Returns:
            logging.Logger: Настроенный логгер
        """
        if self.logger is None:
            raise RuntimeError("Логгер не инициализирован")
        return self.logger

    def close(self) -> None:
        """Закрывает обработчики логгера."""
        if self.logger is None:
            return
        for handler in self.logger.handlers[:]:
            handler.close()
            self.logger.removeHandler(handler)

    def log_run_start(self, source: Path, destination: Path, mode: str, workers: int) -> None:
        """
        Логирует начало раскладки.

        Args:
            source: Исходный каталог
            destination: Корень назначения
            mode: Режим (copy или move)
            workers: Количество потоков
        """
        self.logger.info(f"🚀 Начало раскладки файлов по датам")
        self.logger.info(f"📁 Источник: {source}")
        self.logger.info(f"📂 Назначение: {destination}")
        self.logger.info(f"🔧 Режим: {mode}, потоков: {workers}")
        self.logger.info(f"⏰ Время начала: {datetime.now().strftime(LOG_DATE_FORMAT)}")

    def log_run_end(self, relocated: int, buckets: int, skipped: int) -> None:
        """
        Логирует завершение раскладки.

        Args:
            relocated: Разложено файлов
            buckets: Создано каталогов по датам
            skipped: Пропущено подкаталогов
        """
        self.logger.info(f"✅ Раскладка завершена")
        self.logger.info(f"   • Разложено файлов: {relocated}")
        self.logger.info(f"   • Каталогов по датам: {buckets}")
        self.logger.info(f"   • Пропущено подкаталогов: {skipped}")

    def log_plan_ready(self, planned: int, buckets: int) -> None:
        """Логирует готовность плана."""
        self.logger.info(f"📋 План готов: {planned} файлов, {buckets} каталогов по датам")

    def log_bucket_created(self, date_key: str, path: Path) -> None:
        """Логирует создание каталога по дате."""
        self.logger.debug(f"📂 Каталог {date_key} создан: {path}")

    def log_entry_skipped(self, path: Path) -> None:
        """Логирует пропуск подкаталога."""
        self.logger.debug(f"⏭️ Подкаталог пропущен: {path}")

    def log_file_relocated(self, operation: str, source_path: Path, target_path: Path) -> None:
        """
        Логирует успешную раскладку файла.

        Args:
            operation: copy или move
            source_path: Исходный путь
            target_path: Целевой путь
        """
        self.logger.info(f"📁 {operation.upper()}: {source_path} → {target_path}")

    def log_file_error(self, path: Path, error: Exception) -> None:
        """
        Логирует ошибку при обработке файла.

        Args:
            path: Путь к файлу
            error: Исключение
        """
        self.logger.error(f"❌ Ошибка при обработке {path}: {error}")

    def log_system_info(self, info: str) -> None:
        """Логирует системную информацию."""
        self.logger.info(f"ℹ️ {info}")

    def log_warning(self, message: str) -> None:
        """Логирует предупреждение."""
        self.logger.warning(f"⚠️ {message}")

    def log_critical_error(self, message: str, error: Exception = None) -> None:
        """
        Логирует критическую ошибку.

        Args:
            message: Сообщение об ошибке
            error: Исключение (опционально)
        """
        if error:
            self.logger.critical(f"💥 {message}: {error}")
        else:
            self.logger.critical(f"💥 {message}")


def setup_logger(config: LoggingConfig) -> logging.Logger:
    """
    Удобная функция для быстрой настройки логгера.

    Args:
        config: Конфигурация логирования

    Returns:
        logging.Logger: Настроенный логгер
    """
    return DateSortLogger(config).get_logger()


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """Получает логгер по имени."""
    return logging.getLogger(name)
