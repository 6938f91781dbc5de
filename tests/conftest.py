import matplotlib

matplotlib.use("Agg")

import pytest

# traces/yi.trace from the CS:APP cache lab
YI_TRACE = """ L 10,1
 M 20,1
 L 22,1
 S 18,1
 L 110,1
 L 210,1
 M 12,1
"""


@pytest.fixture
def yi_trace(tmp_path):
    path = tmp_path / "yi.trace"
    path.write_text(YI_TRACE)
    return path
