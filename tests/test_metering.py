import math

import numpy as np
import pytest

from wordtok.metering import AverageValueMeter, RatioMeter


def test_average_value_meter():
    meter = AverageValueMeter()
    mean, std = meter.value()
    assert math.isnan(mean) and math.isnan(std)

    meter.add(4.0)
    assert meter.value() == (4.0, np.inf)

    values = [4.0, 7.0, 1.0, 12.0]
    for value in values[1:]:
        meter.add(value)

    mean, std = meter.value()
    assert mean == pytest.approx(np.mean(values))
    assert std == pytest.approx(np.std(values, ddof=1))


def test_average_value_meter_repeats_and_reset():
    meter = AverageValueMeter()
    meter.add(2.0, n=3)
    meter.add(6.0)

    mean, std = meter.value()
    assert mean == pytest.approx(3.0)
    assert std == pytest.approx(np.std([2.0, 2.0, 2.0, 6.0], ddof=1))

    meter.reset()
    assert meter.n == 0
    assert math.isnan(meter.value()[0])


def test_ratio_meter():
    meter = RatioMeter()
    assert math.isnan(meter.value())

    meter.add(1, 4)
    meter.add(0, 4)
    assert meter.value() == pytest.approx(0.125)

    meter.add(0, 0)
    assert meter.value() == pytest.approx(0.125)
