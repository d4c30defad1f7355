"""Test command line parsing."""

import pytest
from traitlets import Bool, Int, List, Unicode

from tierconf import CLIUsageError, ConfigError, RequestedExit, Section
from tierconf.loaders import CLILoader
from tierconf.utils import flag_name, to_kebab

from .sections import AppConfig


def parse(argv: list[str], current: dict | None = None, **kwargs) -> dict:
    loader = CLILoader(AppConfig.config_meta(), current=current, **kwargs)
    return loader.get_config(argv)


COMPLETE = {"database_url": "postgres://db"}


class TestFlagNames:
    @pytest.mark.parametrize(
        "name,expected",
        [
            ("port", "port"),
            ("database_url", "database-url"),
            ("maxConnections", "max-connections"),
            ("HTTPPort", "h-t-t-p-port"),
        ],
    )
    def test_kebab(self, name, expected):
        assert to_kebab(name) == expected

    def test_nested(self):
        assert flag_name("logging.maxConnections") == "logging.max-connections"

    def test_override(self):
        assert flag_name("logging.level", "log-level") == "log-level"
        assert flag_name("logging.level", "--log-level") == "log-level"


class TestRequired:
    def test_missing_flag(self):
        with pytest.raises(CLIUsageError) as excinfo:
            parse([])
        assert excinfo.value.status == 2
        assert "--database-url" in excinfo.value.text

    def test_provided_flag(self):
        assert parse(["--database-url", "postgres://db"]) == COMPLETE

    def test_not_required_when_present(self):
        assert parse([], current=COMPLETE) == {}

    def test_missing_list(self):
        loader = CLILoader(AppConfig.config_meta(), current={})
        assert loader.missing == {"database_url"}
        # optional section with a required field
        loader = CLILoader(AppConfig.config_meta(), current={"tls": {}})
        assert loader.missing == {"database_url", "tls.cert"}


class TestValues:
    def test_types(self):
        config = parse(
            [
                "--port",
                "9090",
                "--timeout",
                "2.5",
                "--logging.level",
                "42",
                "--logging.max-connections",
                "3",
            ],
            current=COMPLETE,
        )
        assert config == {
            "port": 9090,
            "timeout": 2.5,
            "logging": {"level": "42", "maxConnections": 3},
        }

    def test_bool_switch(self):
        assert parse(["--debug"], current=COMPLETE) == {"debug": True}
        assert parse(["--no-debug"], current=COMPLETE) == {"debug": False}

    def test_append(self):
        config = parse(["--hosts", "a", "--hosts", "b"], current=COMPLETE)
        assert config == {"hosts": ["a", "b"]}

    def test_whole_list(self):
        config = parse(["--hosts", '["a", "b"]'], current=COMPLETE)
        assert config == {"hosts": ["a", "b"]}

    def test_append_numbers(self):
        class S(Section):
            ports = List(Int())

        loader = CLILoader(S.config_meta(), current={})
        assert loader.get_config(["--ports", "1", "--ports", "2"]) == {"ports": [1, 2]}
        assert loader.get_config(["--ports", "[1, 2]"]) == {"ports": [1, 2]}

    def test_equal_sign(self):
        assert parse(["--database-url=a=b"]) == {"database_url": "a=b"}

    def test_skipped_field(self):
        with pytest.raises(CLIUsageError):
            parse(["--secret", "x"], current=COMPLETE)

    def test_explicit_flag(self):
        class S(Section):
            level = Unicode("info").tag(flag="log-level")
            verbose = Bool(False).tag(flag="v")

        loader = CLILoader(S.config_meta())
        assert loader.get_config(["--log-level", "debug", "--v"]) == {
            "level": "debug",
            "verbose": True,
        }


class TestErrors:
    def test_unknown_flag(self):
        with pytest.raises(CLIUsageError, match="did you mean '--port'"):
            parse(["--prot", "1"], current=COMPLETE)

    def test_no_abbreviation(self):
        with pytest.raises(CLIUsageError):
            parse(["--databa", "x"])

    def test_missing_value(self):
        with pytest.raises(CLIUsageError):
            parse(["--port"], current=COMPLETE)

    def test_flag_collision(self):
        class S(Section):
            max_connections = Int(1)
            maxConnections = Int(2)

        with pytest.raises(ConfigError, match="--max-connections") as excinfo:
            CLILoader(S.config_meta())
        assert "max_connections" in str(excinfo.value)
        assert "maxConnections" in str(excinfo.value)

    def test_negated_flag_collision(self):
        class S(Section):
            debug = Bool(False)
            no_debug = Bool(False)

        with pytest.raises(ConfigError, match="--no-debug"):
            CLILoader(S.config_meta())

    def test_reserved_flag(self):
        class S(Section):
            usage = Unicode("").tag(flag="help")

        with pytest.raises(ConfigError, match="'help' and 'usage'"):
            CLILoader(S.config_meta())


class TestExitRequests:
    def test_help(self):
        with pytest.raises(RequestedExit) as excinfo:
            parse(["--help"])
        exc = excinfo.value
        assert not isinstance(exc, CLIUsageError)
        assert exc.status == 0
        assert "--database-url" in exc.text
        assert "REQUIRED" in exc.text
        assert "Configuration for AppConfig" in exc.text

    def test_help_current_values(self):
        with pytest.raises(RequestedExit) as excinfo:
            parse(["-h"], current={"database_url": "x", "port": 80})
        text = " ".join(excinfo.value.text.split())
        assert "(current: 80)" in text
        assert "(optional)" in text
        assert "REQUIRED" not in text

    def test_help_after_separator(self):
        with pytest.raises(CLIUsageError):
            parse(["--", "--help"])

    def test_version(self):
        with pytest.raises(RequestedExit) as excinfo:
            parse(["--version"], current=COMPLETE, version="1.2.3")
        assert excinfo.value.status == 0
        assert excinfo.value.text.strip() == "1.2.3"

    def test_no_version_flag(self):
        with pytest.raises(CLIUsageError):
            parse(["--version"], current=COMPLETE)

    def test_prog(self):
        with pytest.raises(RequestedExit) as excinfo:
            parse(["--help"], prog="myapp")
        assert "usage: myapp" in excinfo.value.text
