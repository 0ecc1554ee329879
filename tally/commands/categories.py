"""Category commands: create, list and rename."""

from rich.table import Table

from tally.commands.common import console, get_database, request_context, run
from tally.domain.models import CategoryId
from tally.services import CategoriesService
from tally.services.schema import CategoryRequest, CreateCategoriesRequest, UpdateCategoryRequest


def create_categories_command(user: int, names: list[str]) -> None:
    request = CreateCategoriesRequest(categories=tuple(CategoryRequest(name=name) for name in names))
    service = CategoriesService(get_database())
    created = run(lambda: service.create_categories(request_context(user, write=True), request), "/categories")

    for category in created["categories"]:
        console.print(f"[green]Created category {category['id']}: {category['name']}[/green]")


def list_categories_command(user: int) -> None:
    """Show categories, most recently used first."""
    service = CategoriesService(get_database())
    categories = run(lambda: service.get_categories(request_context(user)), "/categories")["categories"]

    if not categories:
        console.print("[yellow]No categories found.[/yellow]")
        return

    table = Table(title="Categories")
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Name", style="magenta")
    table.add_column("Last used")
    table.add_column("Version", style="dim", justify="right")

    for category in categories:
        table.add_row(
            str(category["id"]),
            category["name"],
            category["lastUsedAt"] or "[dim]never[/dim]",
            str(category["version"]),
        )

    console.print(table)


def rename_category_command(user: int, category_id: int, name: str, version: int | None) -> None:
    service = CategoriesService(get_database())
    category = run(
        lambda: service.update_category(
            request_context(user, write=True), CategoryId(category_id), UpdateCategoryRequest(name=name, version=version)
        ),
        f"/categories/{category_id}",
    )
    console.print(f"[green]Category {category['id']} is now {category['name']}, version {category['version']}[/green]")
