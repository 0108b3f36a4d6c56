"""Build the database URL from discrete connection settings."""
from sqlalchemy.engine import URL


def get_database_url(
    driver: str,
    host: str,
    port: int,
    user: str | None,
    password: str | None,
    name: str | None,
) -> str:
    """
    Construct a database URL from components.

    Credentials are escaped, so passwords may contain '@', ':' or '/'.

    Example:
        >>> get_database_url("postgresql+asyncpg", "db", 5432, "council", "s3cr@t", "council")
        'postgresql+asyncpg://council:s3cr%40t@db:5432/council'
    """
    url = URL.create(
        drivername=driver,
        username=user,
        password=password,
        host=host,
        port=port,
        database=name,
    )
    return url.render_as_string(hide_password=False)
