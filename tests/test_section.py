"""Test Section class, its schema and decoding."""

import logging

import pytest
from traitlets import Bool, Dict, Enum, Int, List, Unicode, default

from tierconf import DecodeError, Section, Subsection
from tierconf.meta import FieldKind
from tierconf.section import decode, unknown_keys

from .sections import TLS, AppConfig


class TestDefinition:
    def test_dynamic_definition(self):
        class S(Section):
            control = Int(0)

            class a(Section):
                x = Int(0)

            class b(Section):
                y = Int(0)

        assert list(S._subsections) == ["a", "b"]
        assert S._subsections["a"].klass is S._aSectionDef

    def test_traits_tagged(self):
        class S(Section):
            a = Int(0)
            b = Int(0).tag(config=False)

        assert set(S.class_trait_names(config=True)) == {"a"}

    def test_inherit_subsections(self):
        class Base(Section):
            class sub(Section):
                x = Int(0)

        class Child(Base):
            y = Int(1)

        assert "sub" in Child._subsections
        assert Child().sub.x == 0


class TestSchema:
    def test_paths(self):
        meta = AppConfig.config_meta()
        assert meta.name == "AppConfig"
        assert set(meta.paths()) == {
            "database_url",
            "port",
            "debug",
            "timeout",
            "hosts",
            "secret",
            "logging",
            "logging.level",
            "logging.maxConnections",
            "tls",
            "tls.cert",
            "tls.verify",
        }

    def test_kinds(self):
        meta = AppConfig.config_meta()
        assert meta.get("database_url").kind is FieldKind.STRING
        assert meta.get("port").kind is FieldKind.INT
        assert meta.get("debug").kind is FieldKind.BOOL
        assert meta.get("timeout").kind is FieldKind.FLOAT
        assert meta.get("hosts").kind is FieldKind.SEQUENCE
        assert meta.get("hosts").item_kind is FieldKind.STRING
        assert meta.get("logging").kind is FieldKind.NESTED

    def test_requiredness(self):
        meta = AppConfig.config_meta()
        url = meta.get("database_url")
        assert url.required and not url.has_default
        port = meta.get("port")
        assert port.required and port.has_default
        assert not meta.get("timeout").required
        assert meta.get("hosts").has_default
        assert meta.get("logging").required
        assert not meta.get("tls").required
        assert not meta.get("tls.cert").has_default

    def test_tags(self):
        class S(Section):
            a = Int().tag(skip=True)
            b = Int().tag(flag="bee")
            c = Unicode().tag(has_default=True)
            d = Int(3).tag(has_default=False)

        meta = S.config_meta()
        assert meta.get("a").skip
        assert meta.get("b").flag == "bee"
        assert meta.get("c").has_default
        assert not meta.get("d").has_default

    def test_default_detection(self):
        class S(Section):
            plain = Unicode()
            given = Unicode("x")
            empty_list = List(Int())
            full_list = List(Int(), default_value=[1])
            mapping = Dict()
            dynamic = Int()
            color = Enum(["red", "blue"], default_value="red")

            @default("dynamic")
            def _default_dynamic(self):
                return 5

        meta = S.config_meta()
        assert not meta.get("plain").has_default
        assert meta.get("given").has_default
        assert not meta.get("empty_list").has_default
        assert meta.get("full_list").has_default
        assert meta.get("mapping").kind is FieldKind.MAPPING
        assert meta.get("dynamic").has_default
        assert meta.get("color").kind is FieldKind.STRING

    def test_help(self):
        meta = AppConfig.config_meta()
        assert meta.get("port").help == "Port to listen on."


class TestDecode:
    def test_minimal(self):
        config = decode(AppConfig, {"database_url": "postgres://db"})
        assert config.database_url == "postgres://db"
        assert config.port == 8080
        assert config.debug is False
        assert config.timeout is None
        assert config.hosts == ["localhost"]
        assert config.logging.level == "info"
        assert config.tls is None

    def test_nested(self):
        config = decode(
            AppConfig,
            {
                "database_url": "x",
                "logging": {"level": "debug"},
                "tls": {"cert": "/etc/cert.pem"},
            },
        )
        assert config.logging.level == "debug"
        assert config.logging.maxConnections == 10
        assert config.tls.cert == "/etc/cert.pem"
        assert config.tls.verify is True
        assert config["tls.cert"] == "/etc/cert.pem"

    def test_missing_required(self):
        with pytest.raises(DecodeError, match="database_url") as excinfo:
            decode(AppConfig, {})
        assert excinfo.value.type_name == "AppConfig"

    def test_missing_skipped(self):
        class S(Section):
            token = Unicode().tag(skip=True)

        with pytest.raises(DecodeError, match="token"):
            decode(S, {})
        assert decode(S, {"token": "abc"}).token == "abc"

    def test_missing_in_optional_nested(self):
        with pytest.raises(DecodeError, match="tls.cert"):
            decode(AppConfig, {"database_url": "x", "tls": {}})

    def test_null_optional_nested(self):
        config = decode(AppConfig, {"database_url": "x", "tls": None})
        assert config.tls is None
        assert config.as_dict()["tls"] is None

    def test_required_nested_cannot_be_none(self):
        class S(Section):
            sub = Subsection(TLS, has_default=True)

        with pytest.raises(DecodeError):
            decode(S, {"sub": None})

    def test_wrong_type(self):
        with pytest.raises(DecodeError, match="port"):
            decode(AppConfig, {"database_url": "x", "port": "abc"})

    def test_not_a_mapping(self):
        with pytest.raises(DecodeError):
            decode(AppConfig, [1, 2])

    @pytest.mark.parametrize("value", [5, ["a"], "debug"])
    def test_nested_not_a_mapping(self, value):
        with pytest.raises(DecodeError, match="logging: expected a mapping"):
            decode(AppConfig, {"database_url": "x", "logging": value})

    def test_deep_nested_not_a_mapping(self):
        class Outer(Section):
            class inner(Section):
                class deep(Section):
                    x = Int(0)

        with pytest.raises(DecodeError, match="inner.deep: expected a mapping"):
            decode(Outer, {"inner": {"deep": [1]}})

    def test_unknown_keys_warning(self, caplog):
        with caplog.at_level(logging.WARNING):
            config = decode(AppConfig, {"database_url": "x", "prot": 1})
        assert config.port == 8080
        assert "prot" in caplog.text
        assert "did you mean 'port'" in caplog.text

    def test_unknown_keys_strict(self):
        with pytest.raises(DecodeError, match="logging.lvl"):
            decode(
                AppConfig,
                {"database_url": "x", "logging": {"lvl": "debug"}},
                strict=True,
            )

    def test_unknown_keys(self):
        tree = {"a": 1, "port": 2, "logging": {"level": "x", "b": 2}, "tls": None}
        assert unknown_keys(AppConfig.config_meta(), tree) == ["a", "logging.b"]


class TestAccess:
    def test_keys(self):
        config = decode(AppConfig, {"database_url": "x"})
        assert "logging.level" in config.keys()
        assert not any(k.startswith("tls.") for k in config.keys())

    def test_getitem_suggestion(self):
        config = decode(AppConfig, {"database_url": "x"})
        with pytest.raises(KeyError, match="logging.level"):
            config["logging.levle"]

    def test_equality(self):
        a = decode(AppConfig, {"database_url": "x"})
        b = decode(AppConfig, {"database_url": "x"})
        c = decode(AppConfig, {"database_url": "y"})
        assert a == b
        assert a != c

    def test_repr(self):
        config = decode(AppConfig, {"database_url": "x", "port": 1})
        text = repr(config)
        assert "port: 1  (default: 8080)" in text
        assert "tls: None" in text

    def test_bool_from_tree(self):
        class S(Section):
            flag = Bool(False)

        assert decode(S, {"flag": True}).flag is True
