"""User registration command."""

from tally.commands.common import console, get_database, request_context, run
from tally.services import UserService
from tally.services.schema import CreateUserRequest


def create_user_command(email: str) -> None:
    service = UserService(get_database())
    user = run(lambda: service.create_user(request_context(None, write=True), CreateUserRequest(email=email)), "/users")
    console.print(f"[green]Created user {user['id']}: {user['email']}[/green]")
