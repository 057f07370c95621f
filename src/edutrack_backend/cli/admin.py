import asyncio
import logging
import click
import uvicorn

from edutrack_backend.auth.keycloak import KeycloakIdentityGateway
from edutrack_backend.database import Database
from edutrack_backend.permissions.principal import Role
from edutrack_backend.services.accounts import provision_account


@click.command()
@click.option("--host", default="0.0.0.0", show_default=True)
@click.option("--port", default=8000, type=int, show_default=True)
@click.option("--log-level", default="info", type=click.Choice(["debug", "info", "warning", "error"]), show_default=True)
@click.option("--reload", is_flag=True, default=False)
def serve(host: str, port: int, log_level: str, reload: bool):
    """Run the HTTP API."""
    logging.basicConfig(level=log_level.upper())
    uvicorn.run("edutrack_backend.server:create_app", factory=True, host=host, port=port, log_level=log_level, reload=reload)


@click.command()
@click.option("--database-url", envvar="DATABASE_URL", default=None, help="Overrides the configured database")
def init_db(database_url):
    """Create the users, courses and enrollments collections."""
    database = Database(database_url).connect()
    try:
        database.create_all()
    finally:
        database.dispose()
    click.echo("Database initialized")


async def _create_superadmin(email: str, password: str, name: str):
    database = Database().connect()
    gateway = KeycloakIdentityGateway()
    await gateway.initialize()
    db = database.session()
    try:
        return await provision_account(db, gateway, email=email, role=Role.super_admin, password=password, name=name)
    finally:
        db.close()
        await gateway.close()
        database.dispose()


@click.command()
@click.option("--email", prompt=True)
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.option("--name", default="Administrator", show_default=True)
def create_superadmin(email: str, password: str, name: str):
    """Bootstrap the first SuperAdmin account in the identity provider and the store."""
    user = asyncio.run(_create_superadmin(email, password, name))
    click.echo(f"Created SuperAdmin {user.email} ({user.id})")
