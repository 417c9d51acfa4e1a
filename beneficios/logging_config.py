"""
Configuração de logging da aplicação.

JSON estruturado em produção, formato legível em desenvolvimento.
"""

import sys
import json
import logging
from datetime import datetime, timezone


class JSONFormatter(logging.Formatter):
    """Formatter JSON para logs estruturados em produção."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False)


class DevelopmentFormatter(logging.Formatter):
    """Formatter legível para desenvolvimento."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now().strftime('%H:%M:%S')
        location = f'{record.module}:{record.lineno}'
        base = f'[{timestamp}] {record.levelname:8} {location:28} {record.getMessage()}'
        if record.exc_info:
            base = f'{base}\n{self.formatException(record.exc_info)}'
        return base


def setup_logging(level: str = 'INFO', json_format: bool = False,
                  logger_name: str = 'beneficios') -> logging.Logger:
    """Configura e retorna o logger raiz do pacote.

    Os módulos usam ``logging.getLogger(__name__)`` e herdam este handler.
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Evita handlers duplicados quando create_app é chamado várias vezes (testes)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logger.level)
    handler.setFormatter(JSONFormatter() if json_format else DevelopmentFormatter())
    logger.addHandler(handler)

    logger.propagate = False

    return logger
