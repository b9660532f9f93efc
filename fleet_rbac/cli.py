"""Fleet RBAC CLI tool (rbacctl)."""

import typer

app = typer.Typer(name="rbacctl", help="Fleet RBAC CLI")
db_app = typer.Typer(help="Database management commands")
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init():
    """Create all tables that do not exist yet."""
    from fleet_rbac.db.base import Base
    from fleet_rbac.db.session import engine
    import fleet_rbac.models  # noqa: F401  (registers the tables)

    Base.metadata.create_all(bind=engine)
    typer.echo("Tables created (or already present)")


@db_app.command("seed")
def db_seed(
    with_admin: bool = typer.Option(True, help="Also create the super-admin user"),
):
    """Seed the permission catalog, default roles and the super-admin."""
    from fleet_rbac.db.session import SessionLocal
    from fleet_rbac.db.seeds.seed_permissions import seed_permissions
    from fleet_rbac.db.seeds.seed_roles import seed_roles
    from fleet_rbac.db.seeds.seed_super_admin import seed_super_admin

    db = SessionLocal()
    try:
        seed_permissions(db)
        seed_roles(db)
        if with_admin:
            seed_super_admin(db)
    finally:
        db.close()
    typer.echo("All seeds applied")


@db_app.command("drop")
def db_drop():
    """Drop all RBAC tables (DANGER)."""
    confirm = typer.confirm("This will DROP every RBAC table. Continue?")
    if not confirm:
        raise typer.Abort()
    from fleet_rbac.db.base import Base
    from fleet_rbac.db.session import engine
    import fleet_rbac.models  # noqa: F401

    Base.metadata.drop_all(bind=engine)
    typer.echo("Tables dropped")


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Host"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(False, help="Auto-reload"),
):
    """Start the FastAPI server."""
    import uvicorn
    uvicorn.run("fleet_rbac.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
