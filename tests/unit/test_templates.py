import pytest

from gamepanel.quota import HARD_CAP_DISK_MB, HARD_CAP_RAM_MB
from gamepanel.templates import TEMPLATES, from_template


@pytest.mark.parametrize("key", list(TEMPLATES))
def test_templates_fit_hard_caps(key):
    request = from_template(key)

    assert request.ram <= HARD_CAP_RAM_MB
    assert request.disk <= HARD_CAP_DISK_MB
    assert request.startup_command


def test_custom_name():
    assert from_template("valheim", "Vikings").name == "Vikings"


def test_unknown_template():
    with pytest.raises(KeyError):
        from_template("tetris")
