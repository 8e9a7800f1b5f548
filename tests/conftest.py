import pytest

from girdeps.catalog import parse_catalog

SAMPLE_CATALOG = {
    "Foo": {
        "1": {
            "artifact": "Foo-1.typelib",
            "platforms": [
                {"match": "debian", "packages": ["gir1.2-foo-1"]},
                {"match": "fedora", "packages": ["foo"]},
            ],
        },
    },
    "Bar": {
        "2": {
            "artifact": "Bar-2.typelib",
            "platforms": [
                {"match": "ubuntu:20.04", "unavailable": True},
                {"match": "debian", "packages": ["libbar2"]},
                {"match": "arch", "packages": ["bar", "bar-extras"]},
            ],
        },
    },
    "Baz": {
        "0.1": {
            "artifact": "Baz-0.1.typelib",
            "platforms": [{"match": "arch", "packages": ["baz"]}],
        },
    },
}

UBUNTU_2204 = {"ID": "ubuntu", "ID_LIKE": "debian", "VERSION_ID": "22.04"}
UBUNTU_2004 = {"ID": "ubuntu", "ID_LIKE": "debian", "VERSION_ID": "20.04"}
FEDORA_40 = {"ID": "fedora", "VERSION_ID": "40"}
ARCH = {"ID": "arch"}


@pytest.fixture
def catalog():
    """A small catalog with packaged, unavailable and unknown platforms."""
    return parse_catalog(SAMPLE_CATALOG, "sample")
