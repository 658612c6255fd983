"""集成测试共享 fixture"""

import multiprocessing

import pytest


@pytest.fixture
def fork_ctx():
    """多进程上下文（fork），平台不支持时跳过"""
    if "fork" not in multiprocessing.get_all_start_methods():
        pytest.skip("fork start method unavailable")
    return multiprocessing.get_context("fork")
