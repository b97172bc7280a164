"""
Главный модуль CLI интерфейса утилиты раскладки файлов по датам.

Пример:

    datesort ./inbox ./archive --move-files
"""

import argparse
import sys
from typing import List, Optional

try:
    from .config_loader import load_config, VALID_LOG_LEVELS
    from .file_ops import FileOperationError, RelocationError
    from .logger import DateSortLogger
    from .relocator import Relocator, create_relocator
except ImportError:
    from config_loader import load_config, VALID_LOG_LEVELS
    from file_ops import FileOperationError, RelocationError
    from logger import DateSortLogger
    from relocator import Relocator, create_relocator


class DateSortCLI:
    """Класс для обработки команды CLI."""

    def __init__(self):
        self.config = None
        self.logger: Optional[DateSortLogger] = None
        self.relocator: Optional[Relocator] = None

    def setup(self, args: argparse.Namespace) -> bool:
        """
        Инициализирует CLI из аргументов.

        Returns:
            bool: True если инициализация успешна
        """
        try:
            self.config = load_config(args)
            self.logger = DateSortLogger(self.config.logging)
            self.relocator = create_relocator(self.config, self.logger)
            return True

        except (ValueError, OSError) as e:
            print(f"❌ Ошибка инициализации: {e}")
            return False

    def cmd_run(self, args: argparse.Namespace) -> int:
        """
        Выполняет раскладку.

        Returns:
            int: Код возврата (0 - успех, 1 - ошибка)
        """
        try:
            stats = self.relocator.run()

            print(f"\n✅ Раскладка завершена!")
            print(f"📊 Статистика:")
            print(f"   • Режим: {stats.mode.value}")
            print(f"   • Просмотрено элементов: {stats.entries_scanned}")
            print(f"   • Пропущено подкаталогов: {stats.skipped_dirs}")
            print(f"   • Разложено файлов: {stats.relocated_files}")
            print(f"   • Каталогов по датам: {stats.buckets_created}")
            duration = stats.get_duration()
            if duration is not None:
                print(f"   • Продолжительность: {duration:.2f} сек")
            return 0

        except RelocationError as e:
            print(f"❌ Ошибка раскладки: {e}")
            if e.completed:
                print(f"⚠️ До ошибки разложено файлов: {e.completed}; они остаются на месте назначения")
            return 1
        except FileOperationError as e:
            print(f"❌ {e}")
            return 1
        finally:
            if self.logger:
                self.logger.close()


def create_parser() -> argparse.ArgumentParser:
    """
    Создает парсер аргументов командной строки.

    Returns:
        argparse.ArgumentParser: Настроенный парсер
    """
    parser = argparse.ArgumentParser(
        prog='datesort',
        description="Раскладывает файлы каталога по подкаталогам YYYY-MM-DD по дате изменения",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Примеры использования:

  # Копирование файлов в каталоги по датам (UTC)
  datesort ./inbox ./archive

  # Перемещение вместо копирования
  datesort ./inbox ./archive --move-files

  # Последовательная работа и даты по локальному времени
  datesort ./inbox ./archive --workers 1 --local-time
        """
    )

    parser.add_argument('src', help='Исходный каталог')
    parser.add_argument('dst', help='Корень назначения (создается при отсутствии)')
    parser.add_argument(
        '--move-files', '-m',
        action='store_true',
        help='Перемещать файлы вместо копирования'
    )
    parser.add_argument(
        '--workers', '-j',
        type=int,
        default=None,
        help='Количество потоков (по умолчанию: число CPU, 1 - последовательно)'
    )
    parser.add_argument(
        '--local-time',
        action='store_true',
        help='Определять дату по локальному времени (по умолчанию UTC)'
    )
    parser.add_argument(
        '--log-level',
        type=str.upper,
        choices=VALID_LOG_LEVELS,
        default='INFO',
        help='Уровень логирования (по умолчанию: INFO)'
    )
    parser.add_argument(
        '--log-file',
        help='Файл лога с ротацией (по умолчанию лог пишется только в консоль)'
    )
    parser.add_argument(
        '--max-log-size',
        type=int,
        default=10,
        help='Размер файла лога до ротации, MB (по умолчанию: 10)'
    )
    parser.add_argument(
        '--backup-count',
        type=int,
        default=5,
        help='Количество резервных файлов лога (по умолчанию: 5)'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Подробный вывод'
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Главная функция CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    cli = DateSortCLI()
    if not cli.setup(args):
        return 1

    try:
        return cli.cmd_run(args)

    except KeyboardInterrupt:
        print("\n⚠️ Операция прервана пользователем")
        return 1
    except Exception as e:
        print(f"❌ Неожиданная ошибка: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
