import logging

import pytest

from deformslam.time_profiler import TimeProfiler


class FakeClock:
    def __init__(self, times):
        self._times = iter(times)

    def __call__(self):
        return next(self._times)


def test_tic_toc_records_whole_milliseconds():
    profiler = TimeProfiler(clock=FakeClock([1.0, 1.25]))
    profiler.tic("step")
    profiler.toc("step")
    assert profiler.samples("step") == [250.0]


def test_toc_without_tic_raises():
    profiler = TimeProfiler(clock=FakeClock([0.0]))
    with pytest.raises(KeyError):
        profiler.toc("missing")


def test_measure_returns_result_and_records_sample():
    calls = []
    profiler = TimeProfiler(clock=FakeClock([2.0, 2.5]))

    def work():
        calls.append(1)
        return "done"

    assert profiler.measure("work", work) == "done"
    assert calls == [1]
    assert profiler.samples("work") == [pytest.approx(500.0)]


def test_samples_accumulate_in_order():
    profiler = TimeProfiler(clock=FakeClock([0.0, 0.5, 1.0, 1.25]))
    profiler.tic("a")
    profiler.toc("a")
    profiler.tic("a")
    profiler.toc("a")
    data = profiler.samples("a")
    assert len(data) == 2
    assert data[0] > data[1]


def test_samples_unknown_identifier_raises():
    with pytest.raises(KeyError):
        TimeProfiler().samples("nothing")


def test_print_statistics_unknown_identifier_raises():
    with pytest.raises(KeyError):
        TimeProfiler().print_statistics("nothing")


def test_print_statistics_logs_identifier_and_count(caplog):
    profiler = TimeProfiler(clock=FakeClock([0.0, 0.5]))
    profiler.tic("load")
    profiler.toc("load")
    with caplog.at_level(logging.INFO, logger="deformslam.time_profiler"):
        profiler.print_statistics("load")
    messages = [record.getMessage() for record in caplog.records]
    assert 'Time statistics for identifier "load":' in messages
    assert "\t-Number of samples: 1" in messages


def test_save_statistics_to_file(tmp_path):
    profiler = TimeProfiler(clock=FakeClock([0.0, 0.25, 1.0, 1.75]))
    profiler.tic("load")
    profiler.toc("load")
    profiler.tic("load")
    profiler.toc("load")
    path = tmp_path / "times.txt"
    profiler.save_statistics_to_file(path)
    assert path.read_text(encoding="utf-8") == "load: 500 250  250 750\n"