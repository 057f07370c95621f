import click

from .admin import create_superadmin, init_db, serve

@click.group()
def cli():
    pass

cli.add_command(serve,"serve")
cli.add_command(init_db,"init-db")
cli.add_command(create_superadmin,"create-superadmin")

if __name__ == '__main__':
    cli()
