import os

import pytest

from order_desk import performance_logger
from order_desk.app_container import AppContainer
from order_desk.main import create_app
from order_desk.performance_logger import (
    configure_profiling,
    get_function_stats,
    profile_function,
    reset_function_stats,
    severity_for,
)


@pytest.fixture
def profiling(tmp_path):
    logs_dir = str(tmp_path / 'logs')
    configure_profiling(enabled=True, logs_dir=logs_dir)
    reset_function_stats()
    yield logs_dir
    reset_function_stats()


@pytest.mark.parametrize('elapsed,level', [(10, None), (300, 'WARNING'), (699, 'WARNING'), (700, 'CRITICAL')])
def test_severity_thresholds(elapsed, level):
    assert severity_for(elapsed) == level


def test_profile_function_collects_stats(profiling):
    @profile_function(name='Pack order')
    def pack(n):
        return n * 2

    assert pack(2) == 4
    assert pack(3) == 6
    stats = get_function_stats()['Pack order']
    assert stats['calls'] == 2
    assert stats['max_time'] >= 0


def test_disabled_profiling_records_nothing(profiling):
    configure_profiling(enabled=False)

    @profile_function
    def noop():
        return None

    noop()
    assert get_function_stats() == {}


def test_requests_are_logged(profiling, tmp_path):
    app = create_app({
        'DATA_DIR': str(tmp_path / 'data'),
        'LOGS_DIR': profiling,
        'PROFILING': True,
    })
    try:
        with app.test_client() as c:
            c.post('/api/auth/login', json={'email': 'admin@example.com', 'password': 'admin123', 'role': 'admin'})
            c.get('/api/settings')
    finally:
        AppContainer.reset_instance()

    with open(os.path.join(profiling, performance_logger.PERFORMANCE_LOG), encoding='utf-8') as f:
        lines = f.read().splitlines()
    assert any('| Log in | POST /api/auth/login |' in line for line in lines)
    assert any('| View settings | GET /api/settings | admin@example.com' in line for line in lines)


@pytest.mark.parametrize('value,enabled', [('0', False), ('1', True)])
def test_environment_switch_sets_enable_profiling(monkeypatch, profiling, tmp_path, value, enabled):
    monkeypatch.setenv('ORDER_DESK_PROFILING', value)
    try:
        create_app({'DATA_DIR': str(tmp_path / 'data'), 'LOGS_DIR': profiling})
        assert performance_logger.ENABLE_PROFILING is enabled
    finally:
        configure_profiling(enabled=True)
        AppContainer.reset_instance()
