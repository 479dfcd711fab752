"""Typer CLI for Keyward-Engine."""

import typer
from rich.console import Console

app = typer.Typer(name="keyward", help="Keyward-Engine: License key issuing and lifecycle engine")
console = Console()


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind host"),
    port: int = typer.Option(8080, help="Bind port"),
):
    """Start the Keyward-Engine API server."""
    import uvicorn
    from keyward_engine.app import create_app

    console.print(f"[bold green]Starting Keyward-Engine on {host}:{port}[/bold green]")
    uvicorn.run(create_app(), host=host, port=port)


@app.command()
def generate(
    count: int = typer.Option(1, min=1, max=1000, help="Number of keys to print"),
):
    """Generate license keys (offline, no DB required, not registered)."""
    from keyward_engine.keygen.generator import generate_key

    for _ in range(count):
        console.print(f"[bold]{generate_key()}[/bold]")


@app.command()
def validate(
    key: str = typer.Argument(..., help="License key to validate"),
):
    """Validate a license key's format offline."""
    from keyward_engine.keygen.validator import validate_format

    result = validate_format(key)

    if result.valid:
        console.print(f"[bold green]VALID[/bold green] — {result.message}")
    else:
        console.print(f"[bold red]{result.code}[/bold red] — {result.message}")
        raise typer.Exit(1)


@app.command()
def redeem(
    key: str = typer.Argument(..., help="License key to redeem"),
    url: str = typer.Option("http://localhost:8080", help="Server URL"),
    email: str = typer.Option(None, help="End-user email to bind on first use"),
):
    """Redeem one usage of a license key against a running server."""
    from keyward_engine.client import LicenseClient

    with LicenseClient(server_url=url, license_key=key) as client:
        result = client.redeem(user_email=email)

    if result.accepted:
        remaining = "unlimited" if result.remaining is None else result.remaining
        console.print(f"[bold green]{result.code}[/bold green] — remaining: {remaining}")
    else:
        console.print(f"[bold red]{result.code}[/bold red] — {result.message}")
        raise typer.Exit(1)


@app.command()
def health(
    url: str = typer.Option("http://localhost:8080", help="Server URL"),
):
    """Check Keyward-Engine server health."""
    import httpx

    try:
        resp = httpx.get(f"{url}/health", timeout=5)
        data = resp.json()
        console.print(f"[bold green]{data['status']}[/bold green] — v{data['version']}")
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
