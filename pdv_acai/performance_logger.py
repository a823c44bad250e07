# ==============================================================================
# PROFILING DAS OPERAÇÕES DO CAIXA
# ==============================================================================
# Mede o tempo das operações críticas do PDV (finalizar venda, gerar
# relatório) sem interferir no atendimento.
# Chamadas lentas vão para LOGS_DIR/slow_functions.log, em texto legível.
#
# ATIVAR/DESATIVAR: variável de ambiente PDV_ENABLE_PROFILING
# ==============================================================================

import logging
import os
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from functools import wraps
from typing import Dict, Optional

from pdv_acai import config

logger = logging.getLogger(__name__)

ENABLE_PROFILING = config.ENABLE_PROFILING

# Limites em milissegundos
THRESHOLD_WARNING = config.THRESHOLD_WARNING
THRESHOLD_CRITICAL = config.THRESHOLD_CRITICAL

SLOW_FUNCTIONS_LOG = os.path.join(config.LOGS_DIR, 'slow_functions.log')


@dataclass
class OperationTiming:
    """Tempos acumulados de uma operação perfilada."""
    calls: int = 0
    failures: int = 0
    total_ms: float = 0.0
    max_ms: float = 0.0

    @property
    def average_ms(self) -> float:
        return self.total_ms / self.calls if self.calls else 0.0

    def record(self, elapsed_ms: float, failed: bool) -> None:
        self.calls += 1
        self.total_ms += elapsed_ms
        self.max_ms = max(self.max_ms, elapsed_ms)
        if failed:
            self.failures += 1


_timings: Dict[str, OperationTiming] = {}
_timings_lock = threading.Lock()
_log_lock = threading.Lock()


# ═══════════════════════════════════════════════════════════════════════════
# ARQUIVO DE LOG
# ═══════════════════════════════════════════════════════════════════════════

def _severity(elapsed_ms: float) -> Optional[str]:
    if elapsed_ms >= THRESHOLD_CRITICAL:
        return 'CRÍTICO'
    if elapsed_ms >= THRESHOLD_WARNING:
        return 'LENTO'
    return None


def _append_to_log(text: str) -> None:
    """Acrescenta texto ao log; falha de escrita só gera um aviso."""
    try:
        with _log_lock:
            os.makedirs(os.path.dirname(SLOW_FUNCTIONS_LOG), exist_ok=True)
            with open(SLOW_FUNCTIONS_LOG, 'a', encoding='utf-8') as log_file:
                log_file.write(text)
    except OSError as exc:
        logger.warning("Não foi possível escrever em %s: %s", SLOW_FUNCTIONS_LOG, exc)


def _log_slow_call(operation: str, elapsed_ms: float, severity: str) -> None:
    stamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
    _append_to_log(f"{stamp} [{severity}] {operation}: {elapsed_ms:.0f} ms\n")
    logger.warning("Operação %s: %s (%.0f ms)", severity.lower(), operation, elapsed_ms)


# ═══════════════════════════════════════════════════════════════════════════
# DECORADOR
# ═══════════════════════════════════════════════════════════════════════════

def profile_function(func=None, name=None):
    """
    Mede cada chamada da função decorada.

        @profile_function
        def build_report(...): ...

        @profile_function(name="Finalizar venda")
        def complete_sale(...): ...

    Chamadas que lançam exceção também contam (como falhas).
    Com o profiling desligado a função é retornada sem alteração.
    """
    def decorator(fn):
        if not ENABLE_PROFILING:
            return fn
        operation = name or fn.__name__

        @wraps(fn)
        def wrapper(*args, **kwargs):
            started = time.perf_counter()
            failed = True
            try:
                result = fn(*args, **kwargs)
                failed = False
                return result
            finally:
                elapsed_ms = (time.perf_counter() - started) * 1000
                with _timings_lock:
                    _timings.setdefault(operation, OperationTiming()).record(elapsed_ms, failed)
                severity = _severity(elapsed_ms)
                if severity:
                    _log_slow_call(operation, elapsed_ms, severity)

        return wrapper

    if func is not None:
        return decorator(func)
    return decorator


# ═══════════════════════════════════════════════════════════════════════════
# CONSULTA E RELATÓRIO
# ═══════════════════════════════════════════════════════════════════════════

def get_function_stats():
    """
    Returns:
        dict: {operação: {calls, failures, avg_time, max_time}} (tempos em ms)
    """
    with _timings_lock:
        return {
            operation: {
                'calls': timing.calls,
                'failures': timing.failures,
                'avg_time': round(timing.average_ms, 2),
                'max_time': round(timing.max_ms, 2),
            }
            for operation, timing in _timings.items()
        }


def write_function_stats_report():
    """Acrescenta ao log uma tabela com as operações, da mais lenta à mais rápida."""
    if not ENABLE_PROFILING:
        return
    stats = get_function_stats()
    if not stats:
        return

    lines = [
        '',
        f"=== Desempenho do PDV ({datetime.now():%Y-%m-%d %H:%M:%S}) ===",
        f"{'Operação':<32} {'Chamadas':>8} {'Falhas':>6} {'Média':>8} {'Máx.':>8}",
    ]
    ranked = sorted(stats.items(), key=lambda entry: entry[1]['avg_time'], reverse=True)
    for operation, data in ranked:
        flag = _severity(data['avg_time']) or ''
        if not flag and _severity(data['max_time']) == 'CRÍTICO':
            flag = 'PICOS'
        lines.append(
            f"{operation:<32} {data['calls']:>8} {data['failures']:>6} "
            f"{data['avg_time']:>6.0f}ms {data['max_time']:>6.0f}ms {flag}".rstrip()
        )
    _append_to_log('\n'.join(lines) + '\n')


def reset_stats():
    """Zera os tempos acumulados."""
    with _timings_lock:
        _timings.clear()


def get_log_summary():
    """
    Returns:
        dict: {exists, size_kb, lines} do arquivo de chamadas lentas
    """
    if not os.path.exists(SLOW_FUNCTIONS_LOG):
        return {'exists': False, 'size_kb': 0, 'lines': 0}
    with open(SLOW_FUNCTIONS_LOG, 'r', encoding='utf-8') as log_file:
        line_count = sum(1 for _ in log_file)
    size_kb = os.path.getsize(SLOW_FUNCTIONS_LOG) / 1024
    return {'exists': True, 'size_kb': round(size_kb, 2), 'lines': line_count}
