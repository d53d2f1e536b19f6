"""
Tests for timing, device selection and tolerance tiers.
"""

import time

import pytest

from pyndlinear.core.compute import Timer, select_device, get_cpu_info
from pyndlinear.core.compute.tolerances import (
    CPU_FP64,
    GPU_FP32,
    GPU_FP64,
    select_tolerance,
)


class TestTimer:

    def test_sections_recorded(self):
        timer = Timer()
        timer.start()
        with timer.section('solve'):
            time.sleep(0.001)
        timer.stop()
        result = timer.result()
        assert result['solve'] > 0
        assert result['total_seconds'] >= result['solve']

    def test_sections_accumulate(self):
        timer = Timer()
        timer.start()
        with timer.section('rows'):
            time.sleep(0.001)
        first = timer._sections['rows']
        with timer.section('rows'):
            time.sleep(0.001)
        timer.stop()
        assert timer.result()['rows'] > first

    def test_stop_before_start_raises(self):
        with pytest.raises(RuntimeError, match="before start"):
            Timer().stop()

    def test_result_before_stop_raises(self):
        timer = Timer()
        timer.start()
        with pytest.raises(RuntimeError, match="before stop"):
            timer.result()


class TestDevice:

    def test_cpu_selection(self):
        device = select_device('cpu')
        assert device.device_type == 'cpu'
        assert not device.is_gpu
        assert device.device_index is None

    def test_auto_returns_a_device(self):
        device = select_device('auto')
        assert device.device_type in ('cpu', 'cuda', 'mps')

    def test_cpu_str(self):
        assert str(get_cpu_info()).startswith("CPU (")


class TestTolerances:

    def test_cpu_backend_uses_fp64_tier(self):
        assert select_tolerance('cpu_qr') is CPU_FP64

    def test_gpu_fp64_tier(self):
        assert select_tolerance('gpu_cholesky_fp64') is GPU_FP64

    def test_gpu_fp32_tier(self):
        assert select_tolerance('gpu_cholesky_fp32') is GPU_FP32

    def test_tiers_ordered(self):
        assert CPU_FP64.rtol < GPU_FP64.rtol < GPU_FP32.rtol
