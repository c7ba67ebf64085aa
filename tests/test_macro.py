# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Tests for macro definition, use-sites and replay."""

import logging

import pytest

from genro_configurator import (
    ConfiguratorException,
    Macro,
    MacroAttribute,
    MacroDef,
    MacroRecord,
    substitute_params,
    typed,
)


class Route:
    def __init__(self):
        self.path = None
        self.handler = None

    def set_path(self, path: str) -> None:
        self.path = path

    def set_handler(self, handler: str) -> None:
        self.handler = handler


class Server:
    def __init__(self):
        self.name = None
        self.host = None
        self.port = None
        self.routes = []

    def set_name(self, name: str) -> None:
        self.name = name

    def set_host(self, host: str) -> None:
        self.host = host

    def set_port(self, port: int) -> None:
        self.port = port

    @typed
    def add_configured_route(self, route: Route) -> None:
        self.routes.append(route)


class Cluster:
    def __init__(self):
        self.servers = []

    def add_configured_server(self, server: Server) -> None:
        self.servers.append(server)


def define_webserver(conf, routes_optional=True):
    """Define macro 'webserver' through the authoring API."""
    conf.start_macro_def("webserver")
    conf.add_macro_attribute("host", "localhost")
    conf.add_macro_attribute("port")
    conf.add_macro_element("routes", optional=routes_optional)
    conf.start_create_child("server")
    conf.set_attribute("host", "${host}")
    conf.set_attribute("port", "${port}")
    conf.set_attribute("name", "${host}:${port}")
    conf.start_create_child("routes")
    conf.end_create_child()
    conf.end_create_child()
    return conf.end_macro_def()


# =============================================================================
# Definition
# =============================================================================


class TestDefinition:
    """Tests for recording macro definitions."""

    def test_define_before_root(self, conf):
        macrodef = define_webserver(conf)
        assert conf.depth == 0
        assert conf.get_macro_def("webserver") is macrodef
        assert list(macrodef.attributes) == ["host", "port"]
        assert macrodef.get_element("routes").optional is True

    def test_recorded_template(self, conf):
        macrodef = define_webserver(conf)
        template = macrodef.macro_record
        assert template.name == "server"
        assert template.attributes == {
            "host": "${host}",
            "port": "${port}",
            "name": "${host}:${port}",
        }
        assert [child.name for child in template.children] == ["routes"]

    def test_top_level_macro_def(self, conf):
        conf.set_root(Cluster())
        assert not conf.is_top_level_macro_def()
        conf.start_macro_def("webserver")
        assert conf.is_top_level_macro_def()
        conf.start_create_child("server")
        assert not conf.is_top_level_macro_def()

    def test_formals_as_children(self, conf):
        """attribute and element children declare formals on the definition."""
        conf.start_macro_def("webserver")
        conf.start_create_child("attribute")
        conf.set_attribute("name", "port")
        conf.set_attribute("default", "80")
        conf.end_create_child()
        conf.start_create_child("element")
        conf.set_attribute("name", "routes")
        conf.set_attribute("optional", "true")
        conf.end_create_child()
        assert conf.is_top_level_macro_def()
        conf.start_create_child("server")
        conf.set_attribute("port", "${port}")
        conf.end_create_child()
        macrodef = conf.end_macro_def()
        assert macrodef.get_attribute("port").default == "80"
        assert macrodef.get_element("routes").optional is True

    def test_undeclared_placeholder(self, conf):
        conf.start_macro_def("webserver")
        conf.add_macro_attribute("port")
        conf.start_create_child("server")
        conf.set_attribute("name", "${host}")
        conf.end_create_child()
        with pytest.raises(ConfiguratorException, match="undeclared attribute host referenced in server.name"):
            conf.end_macro_def()

    def test_missing_template(self, conf):
        conf.start_macro_def("empty")
        with pytest.raises(ConfiguratorException, match="macro empty has no template"):
            conf.end_macro_def()

    def test_second_template_root(self, conf):
        conf.start_macro_def("webserver")
        conf.start_create_child("server")
        conf.end_create_child()
        with pytest.raises(ConfiguratorException, match="already has a template"):
            conf.start_create_child("other")

    def test_attribute_on_definition_fails(self, conf):
        """Formals are declared as children, not as attributes of the definition."""
        conf.start_macro_def("webserver")
        with pytest.raises(ConfiguratorException, match="no set method found for port"):
            conf.set_attribute("port", "80")

    def test_end_without_definition(self, conf):
        conf.set_root(Cluster())
        with pytest.raises(ConfiguratorException, match="no macro definition in progress"):
            conf.end_macro_def()
        with pytest.raises(ConfiguratorException, match="no macro definition in progress"):
            conf.add_macro_attribute("port")

    def test_attribute_without_name(self):
        macrodef = MacroDef("webserver")
        with pytest.raises(ConfiguratorException, match="attribute without name"):
            macrodef.add_configured_attribute(MacroAttribute())

    def test_definition_logged(self, conf, caplog):
        caplog.set_level(logging.DEBUG, logger="genro_configurator")
        define_webserver(conf)
        assert "macro webserver defined" in caplog.text


# =============================================================================
# Use-sites and replay
# =============================================================================


class TestReplay:
    """Tests for instantiating macros through the event protocol."""

    def test_replay_with_defaults(self, conf):
        define_webserver(conf)
        cluster = Cluster()
        conf.set_root(cluster)
        conf.start_create_child("webserver")
        conf.set_attribute("port", "8080")
        server = conf.end_create_child()
        assert cluster.servers == [server]
        assert server.host == "localhost"
        assert server.port == 8080
        assert server.name == "localhost:8080"
        assert conf.depth == 1

    def test_supplied_values_override_defaults(self, conf):
        define_webserver(conf)
        cluster = Cluster()
        conf.set_root(cluster)
        conf.start_create_child("webserver")
        conf.set_attribute("host", "example.org")
        conf.set_attribute("port", "443")
        server = conf.end_create_child()
        assert server.name == "example.org:443"

    def test_use_site_is_macro(self, conf):
        define_webserver(conf)
        conf.set_root(Cluster())
        macro = conf.start_create_child("webserver")
        assert isinstance(macro, Macro)
        assert conf.start_create_child("routes").name == "routes"

    def test_slot_content_spliced(self, conf):
        """Content supplied for a slot replaces the slot, placeholders substituted."""
        define_webserver(conf)
        cluster = Cluster()
        conf.set_root(cluster)
        conf.start_create_child("webserver")
        conf.set_attribute("port", "8000")
        conf.start_create_child("routes")
        conf.start_create_child("route")
        conf.set_attribute("path", "/${host}/api")
        conf.set_attribute("handler", "api")
        conf.end_create_child()
        conf.start_create_child("route")
        conf.set_attribute("path", "/static")
        conf.end_create_child()
        conf.end_create_child()
        server = conf.end_create_child()
        assert [r.path for r in server.routes] == ["/localhost/api", "/static"]
        assert server.routes[0].handler == "api"

    def test_required_slot_supplied(self, conf):
        define_webserver(conf, routes_optional=False)
        cluster = Cluster()
        conf.set_root(cluster)
        conf.start_create_child("webserver")
        conf.set_attribute("port", "8000")
        conf.start_create_child("routes")
        conf.start_create_child("route")
        conf.set_attribute("path", "/index")
        conf.end_create_child()
        conf.end_create_child()
        server = conf.end_create_child()
        assert cluster.servers == [server]
        assert server.port == 8000
        assert [r.path for r in server.routes] == ["/index"]
        assert conf.depth == 1

    def test_optional_slot_skipped(self, conf):
        define_webserver(conf)
        conf.set_root(Cluster())
        conf.start_create_child("webserver")
        conf.set_attribute("port", "8000")
        server = conf.end_create_child()
        assert server.routes == []

    def test_missing_required_attribute(self, conf):
        define_webserver(conf)
        conf.set_root(Cluster())
        conf.start_create_child("webserver")
        with pytest.raises(ConfiguratorException, match="attribute port is required in webserver"):
            conf.end_create_child()

    def test_missing_required_element(self, conf):
        define_webserver(conf, routes_optional=False)
        conf.set_root(Cluster())
        conf.start_create_child("webserver")
        conf.set_attribute("port", "8000")
        with pytest.raises(
            ConfiguratorException,
            match="non optional element is not specified: routes in macro webserver",
        ):
            conf.end_create_child()

    def test_undeclared_attribute_at_use_site(self, conf):
        define_webserver(conf)
        conf.set_root(Cluster())
        conf.start_create_child("webserver")
        with pytest.raises(ConfiguratorException, match="undeclared attribute color on macro webserver"):
            conf.set_attribute("color", "blue")

    def test_undeclared_element_at_use_site(self, conf):
        define_webserver(conf)
        conf.set_root(Cluster())
        conf.start_create_child("webserver")
        with pytest.raises(ConfiguratorException, match="undeclared element extras on macro webserver"):
            conf.start_create_child("extras")

    def test_repeated_replay(self, conf):
        """One use-site can be replayed many times with the same result."""
        define_webserver(conf)
        cluster = Cluster()
        conf.set_root(cluster)
        macro = conf.get_macro_def("webserver").instantiate()
        macro.define_attribute("port", "9000")
        first = macro.play(conf)
        second = macro.play(conf)
        assert first is not second
        assert (first.name, first.port) == (second.name, second.port) == ("localhost:9000", 9000)
        assert macro.att_values == {"port": "9000"}
        assert cluster.servers == [first, second]

    def test_nested_macro(self, conf):
        """A template node named after another macro instantiates it at replay."""
        define_webserver(conf)
        conf.start_macro_def("local")
        conf.add_macro_attribute("port", "7000")
        conf.start_create_child("webserver")
        conf.set_attribute("port", "${port}")
        conf.end_create_child()
        conf.end_macro_def()
        cluster = Cluster()
        conf.set_root(cluster)
        conf.start_create_child("local")
        server = conf.end_create_child()
        assert server.name == "localhost:7000"
        assert cluster.servers == [server]

    def test_replay_logged(self, conf, caplog):
        define_webserver(conf)
        conf.set_root(Cluster())
        caplog.set_level(logging.DEBUG, logger="genro_configurator")
        conf.start_create_child("webserver")
        conf.set_attribute("port", "1")
        conf.end_create_child()
        assert "replaying macro webserver" in caplog.text


class TestPreBound:
    """Tests for template nodes bound to existing objects."""

    def test_programmatic_definition(self, conf):
        shared = Route()
        shared.set_path("/health")
        macrodef = MacroDef("monitored")
        template = macrodef.record_create_child("server")
        template.record_attribute("port", "9100")
        template.record_child("route", shared)
        conf.add_configured_macrodef(macrodef)

        cluster = Cluster()
        conf.set_root(cluster)
        for _ in range(2):
            conf.start_create_child("monitored")
            conf.end_create_child()
        assert [s.port for s in cluster.servers] == [9100, 9100]
        assert cluster.servers[0].routes == [shared]
        assert cluster.servers[1].routes[0] is shared

    def test_recorded_through_configurator(self, conf):
        shared = Route()
        conf.start_macro_def("monitored")
        conf.start_create_child("server")
        conf.set_attribute("port", "1")
        conf.add_child("route", shared)
        record = conf.current
        assert isinstance(record, MacroRecord)
        assert record.obj is shared
        conf.end_create_child()
        conf.end_create_child()
        conf.end_macro_def()

        conf.set_root(Cluster())
        conf.start_create_child("monitored")
        server = conf.end_create_child()
        assert server.routes == [shared]


class TestSubstituteParams:
    """Tests for placeholder substitution."""

    def test_known_tokens(self):
        assert substitute_params("${a}-${b}", {"a": "1", "b": "2"}) == "1-2"

    def test_unknown_tokens_kept(self):
        assert substitute_params("${a}/${z}", {"a": "x"}) == "x/${z}"

    def test_no_tokens(self):
        assert substitute_params("plain $text", {"text": "x"}) == "plain $text"

    def test_repeated_token(self):
        assert substitute_params("${a}${a}", {"a": "ab"}) == "abab"
