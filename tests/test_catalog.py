# tests/test_catalog.py
import pytest
import yaml

from girdeps.catalog import (
    ArtifactFallback,
    DependencyRequest,
    PackageMatch,
    Unavailable,
    as_requests,
    dump_catalog,
    load_catalog,
    load_catalog_file,
    parse_catalog,
)
from girdeps.errors import CatalogError, UnknownDependencyError
from girdeps.platform import identity_chain


class TestDependencyRequest:
    def test_parse(self):
        assert DependencyRequest.parse("Gtk=4.0") == DependencyRequest("Gtk", "4.0")

    @pytest.mark.parametrize("text", ["Gtk", "Gtk=", "=4.0", "Gtk=4.0=x"])
    def test_parse_rejects_malformed(self, text):
        with pytest.raises(ValueError, match="namespace=version"):
            DependencyRequest.parse(text)

    def test_as_requests_from_mapping(self):
        assert as_requests({"Gtk": "4.0", "Adw": "1"}) == [
            DependencyRequest("Gtk", "4.0"),
            DependencyRequest("Adw", "1"),
        ]


class TestMatch:
    def test_first_identity_wins(self, catalog):
        match = catalog.rule("Bar", "2").match(("ubuntu:22.04", "ubuntu", "debian"))
        assert match == PackageMatch("debian", frozenset({"libbar2"}), "Bar-2.typelib")

    def test_version_specific_unavailable(self, catalog):
        match = catalog.rule("Bar", "2").match(("ubuntu:20.04", "ubuntu:20", "ubuntu", "debian"))
        assert match == Unavailable("ubuntu:20.04", "Bar-2.typelib")

    def test_no_match_gives_artifact_and_no_packages(self, catalog):
        match = catalog.rule("Foo", "1").match(("gentoo",))
        assert match == ArtifactFallback("Foo-1.typelib")
        assert not hasattr(match, "packages")

    def test_multiple_candidate_packages(self, catalog):
        match = catalog.rule("Bar", "2").match(("arch",))
        assert match.packages == frozenset({"bar", "bar-extras"})

    def test_wildcard_pattern(self):
        cat = parse_catalog({"X": {"1": {
            "artifact": "X-1.typelib",
            "platforms": [
                {"match": "fedora:3?", "unavailable": True},
                {"match": "fedora", "packages": ["x"]},
            ],
        }}})
        entry = cat.rule("X", "1")
        assert isinstance(entry.match(("fedora:39", "fedora")), Unavailable)
        assert isinstance(entry.match(("fedora:40", "fedora")), PackageMatch)

    def test_chain_order_beats_rule_order(self, catalog):
        # "fedora" is listed after "debian" but is more specific in the chain
        match = catalog.rule("Foo", "1").match(("fedora", "debian"))
        assert match.packages == frozenset({"foo"})


class TestCatalogLookup:
    def test_unknown_namespace(self, catalog):
        with pytest.raises(UnknownDependencyError, match="Nope"):
            catalog.rule("Nope", "1")

    def test_unknown_version(self, catalog):
        with pytest.raises(UnknownDependencyError):
            catalog.rule("Foo", "2")

    def test_len_counts_versions(self, catalog):
        assert len(catalog) == 3

    def test_subset(self, catalog):
        trimmed = catalog.subset([DependencyRequest("Bar", "2")])
        assert len(trimmed) == 1
        assert trimmed.rule("Bar", "2") is catalog.rule("Bar", "2")

    def test_subset_unknown_raises(self, catalog):
        with pytest.raises(UnknownDependencyError):
            catalog.subset([DependencyRequest("Nope", "1")])


class TestParseCatalog:
    def test_float_version_rejected(self):
        with pytest.raises(CatalogError, match="quoted string"):
            parse_catalog(yaml.safe_load("Gtk:\n  4.0:\n    artifact: Gtk-4.0.typelib\n"))

    def test_missing_artifact(self):
        with pytest.raises(CatalogError, match="artifact"):
            parse_catalog({"Gtk": {"4.0": {"platforms": []}}})

    def test_platform_without_packages(self):
        with pytest.raises(CatalogError, match="packages"):
            parse_catalog({"Gtk": {"4.0": {
                "artifact": "Gtk-4.0.typelib",
                "platforms": [{"match": "debian", "packages": []}],
            }}})

    def test_unavailable_with_packages(self):
        with pytest.raises(CatalogError, match="unavailable"):
            parse_catalog({"Gtk": {"4.0": {
                "artifact": "Gtk-4.0.typelib",
                "platforms": [{"match": "debian", "unavailable": True, "packages": ["x"]}],
            }}})

    def test_empty_document(self):
        assert len(parse_catalog(None)) == 0

    def test_dump_parses_back(self, catalog):
        reparsed = parse_catalog(yaml.safe_load(dump_catalog(catalog)))
        assert reparsed == catalog


class TestLoadCatalog:
    def test_builtin_has_known_entries(self):
        cat = load_catalog()
        for namespace, version in [
            ("Adw", "1"), ("Gdk", "3.0"), ("Gdk", "4.0"), ("Gtk", "3.0"), ("Gtk", "4.0"),
            ("Handy", "1"), ("Pango", "1.0"), ("Vte", "2.91"), ("Vte", "3.91"),
        ]:
            assert cat.rule(namespace, version).artifact == f"{namespace}-{version}.typelib"

    def test_builtin_debian_packages(self):
        cat = load_catalog()
        match = cat.rule("Gtk", "4.0").match(("ubuntu:24.04", "ubuntu", "debian"))
        assert match.packages == frozenset({"gir1.2-gtk-4.0"})

    @pytest.mark.parametrize("namespace, version, os_info", [
        ("Adw", "1", {"ID": "ubuntu", "ID_LIKE": "debian", "VERSION_ID": "20.04"}),
        ("Adw", "1", {"ID": "debian", "VERSION_ID": "11"}),
        ("Gdk", "4.0", {"ID": "ubuntu", "ID_LIKE": "debian", "VERSION_ID": "20.04"}),
        ("Gdk", "4.0", {"ID": "debian", "VERSION_ID": "11"}),
        ("Gtk", "4.0", {"ID": "ubuntu", "ID_LIKE": "debian", "VERSION_ID": "20.04"}),
        ("Gtk", "4.0", {"ID": "debian", "VERSION_ID": "11"}),
        ("Vte", "3.91", {"ID": "ubuntu", "ID_LIKE": "debian", "VERSION_ID": "20.04"}),
        ("Vte", "3.91", {"ID": "ubuntu", "ID_LIKE": "debian", "VERSION_ID": "22.04"}),
        ("Vte", "3.91", {"ID": "debian", "VERSION_ID": "11"}),
    ])
    def test_builtin_unavailable_on_old_releases(self, namespace, version, os_info):
        match = load_catalog().rule(namespace, version).match(identity_chain(os_info))
        assert isinstance(match, Unavailable)
        assert match.artifact == f"{namespace}-{version}.typelib"

    @pytest.mark.parametrize("namespace, version", [
        ("Adw", "1"), ("Gtk", "4.0"), ("Vte", "3.91"),
    ])
    def test_builtin_packaged_on_current_ubuntu(self, namespace, version):
        chain = identity_chain({"ID": "ubuntu", "ID_LIKE": "debian", "VERSION_ID": "24.04"})
        assert isinstance(load_catalog().rule(namespace, version).match(chain), PackageMatch)

    def test_extra_file_overrides(self, tmp_path):
        extra = tmp_path / "extra.yaml"
        extra.write_text(yaml.safe_dump({"Gtk": {"4.0": {
            "artifact": "Gtk-4.0.typelib",
            "platforms": [{"match": "gentoo", "packages": ["gui-libs/gtk"]}],
        }}}))
        cat = load_catalog([extra])
        assert cat.rule("Gtk", "4.0").match(("gentoo",)).packages == frozenset({"gui-libs/gtk"})
        assert cat.rule("Gtk", "3.0").artifact == "Gtk-3.0.typelib"

    def test_missing_extra_file(self, tmp_path):
        with pytest.raises(CatalogError, match="not found"):
            load_catalog_file(tmp_path / "absent.yaml")

    def test_invalid_yaml(self, tmp_path):
        bad = tmp_path / "bad.yaml"
        bad.write_text("Gtk: [unclosed\n")
        with pytest.raises(CatalogError, match="invalid YAML"):
            load_catalog_file(bad)
