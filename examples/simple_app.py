from traitlets import Bool, Int, List, Unicode

from tierconf import Loader, Section, Subsection


class TLS(Section):
    cert = Unicode(help="Path to the certificate")
    key = Unicode(help="Path to the private key")


class Config(Section):
    # Your parameters definition goes here !

    database_url = Unicode(help="URL of the database")
    port = Int(8080, help="Port to listen on")
    debug = Bool(False, help="Enable debug mode")
    hosts = List(Unicode(), default_value=["localhost"], help="Allowed hosts")

    class logging(Section):
        level = Unicode("info", help="Log level")

    tls = Subsection(TLS, optional=True, help="Enable TLS")


def check(tree):
    if tree.get("port", 8080) < 1024:
        return "port must be unprivileged"
    return None


if __name__ == "__main__":
    loader = (
        Loader()
        .with_env_prefix("SIMPLE")
        .with_cli()
        .with_version("1.0")
        .with_validation(check)
    )
    config = loader.load_or_exit(Config)

    # Values can be accessed with:
    # print(config.logging.level)
    # print(config["logging.level"])
    print(repr(config))
