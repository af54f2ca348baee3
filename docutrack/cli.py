"""DocuTrack command-line interface.

Usage:
    python -m docutrack register --name NAME --credential SECRET --office OFFICE
    python -m docutrack login --name NAME --credential SECRET
    python -m docutrack create --title TITLE --to OFFICE [--content TEXT] [--file PATH]
    python -m docutrack forward ID --to OFFICE
    python -m docutrack receive ID
    python -m docutrack scan [--image PATH]
    python -m docutrack list [--view inbox|sent|received] [--search TERM]
    python -m docutrack bulk-receive ID [ID ...]
    python -m docutrack bulk-delete ID [ID ...] [--yes]

The logged-in user is kept in the session record of the key-value store,
so commands after login act as that user until logout.

Exit codes:
    0: Success
    1: Operation failed (message on stderr)
"""

from __future__ import annotations

import argparse
import base64
import mimetypes
import sys
from pathlib import Path
from typing import Callable, List, Optional

from docutrack import __version__
from docutrack.config import Settings
from docutrack.errors import DocuTrackError, ValidationFailed
from docutrack.main import DocuTrackApp, configure_logging, create_app
from docutrack.models.document import Attachment, Document, DocumentFields
from docutrack.models.office import Office, Status
from docutrack.models.tracking import destination_of, format_entry
from docutrack.services.qr_scanner import QrScanner, decode_image
from docutrack.services.view_projection import View, project_view, row_actions, view_counts


def _office_arg(raw: str) -> Office:
    try:
        return Office.parse(raw)
    except ValueError:
        choices = ", ".join(office.value for office in Office)
        raise argparse.ArgumentTypeError(f"unknown office {raw!r} (choose from: {choices})")


def _status_arg(raw: str) -> Status:
    try:
        return Status.parse(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"unknown status {raw!r}")


def _load_attachment(path: str) -> Attachment:
    file_path = Path(path)
    try:
        data = file_path.read_bytes()
    except OSError as e:
        raise ValidationFailed(f"Cannot read attachment: {e}", field="attachment")
    mime_type = mimetypes.guess_type(file_path.name)[0] or "application/octet-stream"
    return Attachment(
        file_name=file_path.name,
        mime_type=mime_type,
        data=base64.b64encode(data).decode("ascii"),
    )


def _format_row(document: Document, app: DocuTrackApp) -> str:
    state = "received" if document.is_received else "pending"
    line = (
        f"{document.id}  {document.title}  [{document.status.value}]  "
        f"by {document.owner_name} ({document.owner_office.value})  "
        f"at {document.current_office.value} ({state})  "
        f"{document.last_updated:%Y-%m-%d %H:%M}"
    )
    user = app.identity.current_user()
    if user is not None:
        actions = row_actions(document, user)
        offered = [name for name, allowed in (
            ("receive", actions.can_receive),
            ("edit", actions.can_edit),
            ("delete", actions.can_delete),
            ("forward", actions.can_forward),
        ) if allowed]
        if offered:
            line += f"  actions: {', '.join(offered)}"
    return line


def _print_document(document: Document) -> None:
    print(f"ID:             {document.id}")
    print(f"Title:          {document.title}")
    print(f"Status:         {document.status.value}")
    print(f"Owner:          {document.owner_name} ({document.owner_office.value})")
    print(f"Current office: {document.current_office.value}")
    print(f"Received:       {'yes' if document.is_received else 'no'}")
    if document.summary:
        print(f"Summary:        {document.summary}")
    if document.attachment:
        print(f"Attachment:     {document.attachment.file_name} ({document.attachment.mime_type})")


# -----------------
# Commands
# -----------------
def cmd_register(app: DocuTrackApp, args: argparse.Namespace) -> int:
    user = app.identity.register(args.name, args.credential, args.office)
    print(f"Registered and logged in as {user.name} ({user.office.value}).")
    return 0


def cmd_login(app: DocuTrackApp, args: argparse.Namespace) -> int:
    user = app.identity.login(args.name, args.credential)
    if user is None:
        print("Invalid name or credential.", file=sys.stderr)
        return 1
    print(f"Logged in as {user.name} ({user.office.value}).")
    return 0


def cmd_logout(app: DocuTrackApp, args: argparse.Namespace) -> int:
    app.identity.logout()
    print("Logged out.")
    return 0


def cmd_whoami(app: DocuTrackApp, args: argparse.Namespace) -> int:
    user = app.identity.require_current_user()
    print(f"{user.name} ({user.office.value})")
    return 0


def cmd_offices(app: DocuTrackApp, args: argparse.Namespace) -> int:
    for office in Office.ordered():
        print(office.value)
    return 0


def cmd_create(app: DocuTrackApp, args: argparse.Namespace) -> int:
    user = app.identity.require_current_user()
    fields = DocumentFields(
        title=args.title,
        status=args.status,
        summary=args.summary or "",
        content=args.content or "",
        attachment=_load_attachment(args.file) if args.file else None,
    )
    document = app.engine.create(user, fields, args.to)
    print(f"Created {document.id}: {document.title!r} sent to {document.current_office.value}.")
    return 0


def cmd_edit(app: DocuTrackApp, args: argparse.Namespace) -> int:
    user = app.identity.require_current_user()
    document = app.engine.get(args.id)
    fields = document.fields()
    if args.title is not None:
        fields.title = args.title
    if args.status is not None:
        fields.status = args.status
    if args.summary is not None:
        fields.summary = args.summary
    if args.content is not None:
        fields.content = args.content
    if args.file:
        fields.attachment = _load_attachment(args.file)
    elif args.remove_file:
        fields.attachment = None
    updated = app.engine.edit(document, fields, user)
    print(f"Updated {updated.id}.")
    return 0


def cmd_forward(app: DocuTrackApp, args: argparse.Namespace) -> int:
    user = app.identity.require_current_user()
    document = app.engine.forward(app.engine.get(args.id), user, args.to)
    print(f"Forwarded {document.id} to {document.current_office.value}.")
    return 0


def cmd_receive(app: DocuTrackApp, args: argparse.Namespace) -> int:
    user = app.identity.require_current_user()
    document = app.engine.receive(app.engine.get(args.id), user)
    print(f"Received {document.id} at {document.current_office.value}.")
    return 0


def cmd_scan(app: DocuTrackApp, args: argparse.Namespace) -> int:
    user = app.identity.require_current_user()
    failures = []

    def receive_scanned(code: str) -> None:
        result = app.engine.scan_receive(code, user)
        print(result.message, file=sys.stdout if result.ok else sys.stderr)
        if not result.ok:
            failures.append(result)

    if args.image:
        decoded = decode_image(args.image)
        if decoded is None:
            print("No QR code found in image.", file=sys.stderr)
            return 1
        receive_scanned(decoded)
    else:
        print("Point the camera at a tracking slip QR code (Ctrl+C to cancel)...")
        with QrScanner(camera_index=app.settings.camera_index) as scanner:
            scanner.scan(receive_scanned)

    return 1 if failures else 0


def cmd_list(app: DocuTrackApp, args: argparse.Namespace) -> int:
    user = app.identity.require_current_user()
    view = View(args.view)
    documents = app.documents.list_all()
    projected = project_view(documents, user, view, args.search or "")
    counts = view_counts(documents, user)

    tabs = "  ".join(f"{v.label_for(user)} ({counts[v]})" for v in View)
    print(tabs)
    print(f"== {view.label_for(user)} ==")

    if not projected.documents:
        print("No documents found.")
        return 0
    if projected.is_grouped:
        for group in projected.groups:
            print(f"-- {group.office.value} ({len(group.documents)}) --")
            for document in group.documents:
                print(_format_row(document, app))
    else:
        for document in projected.documents:
            print(_format_row(document, app))
    return 0


def cmd_show(app: DocuTrackApp, args: argparse.Namespace) -> int:
    _print_document(app.engine.get(args.id))
    return 0


def cmd_history(app: DocuTrackApp, args: argparse.Namespace) -> int:
    document = app.engine.get(args.id)
    print(f"Tracking history for {document.title!r}:")
    for entry in reversed(document.tracking_history):
        print(f"  {format_entry(entry)}")
    return 0


def cmd_bulk_receive(app: DocuTrackApp, args: argparse.Namespace) -> int:
    user = app.identity.require_current_user()
    result = app.bulk.bulk_receive(args.ids, user)
    print(result.message, file=sys.stderr if result.no_op else sys.stdout)
    return 1 if result.no_op else 0


def _stdin_prompt(title: str, message: str, documents: List[Document]) -> bool:
    print(title)
    for document in documents:
        print(f"  - {document.title} ({document.id})")
    answer = input(f"{message} [y/N] ")
    return answer.strip().lower() in ("y", "yes")


def cmd_bulk_delete(app: DocuTrackApp, args: argparse.Namespace) -> int:
    user = app.identity.require_current_user()
    pending = app.bulk.bulk_delete(args.ids, user)
    if pending.count == 0:
        print("None of the selected documents exist.", file=sys.stderr)
        return 1
    prompt: Callable[[str, str, List[Document]], bool] = (
        (lambda *_: True) if args.yes else _stdin_prompt
    )
    deleted = pending.resolve_with(prompt)
    if not deleted:
        print("Deletion cancelled.")
        return 0
    print(f"Deleted {len(deleted)} document(s).")
    return 0


def cmd_delete(app: DocuTrackApp, args: argparse.Namespace) -> int:
    user = app.identity.require_current_user()
    document = app.engine.get(args.id)
    removed = app.engine.delete([document.id], user)
    print(f"Deleted {', '.join(removed)}.")
    return 0


def cmd_summarize(app: DocuTrackApp, args: argparse.Namespace) -> int:
    user = app.identity.require_current_user()
    document = app.engine.get(args.id)
    updated = app.summaries.summarize_document(app.engine, document, user)
    print(updated.summary)
    return 0


def cmd_slip(app: DocuTrackApp, args: argparse.Namespace) -> int:
    document = app.engine.get(args.id)
    if args.output:
        path = Path(args.output)
        path.write_bytes(app.slips.render(document))
    else:
        path = app.slips.generate(document)
    destination = destination_of(document.creation_entry)
    print(f"Tracking slip for {document.title!r} (sent to {destination}) written to {path}")
    return 0


COMMANDS = {
    "register": cmd_register,
    "login": cmd_login,
    "logout": cmd_logout,
    "whoami": cmd_whoami,
    "offices": cmd_offices,
    "create": cmd_create,
    "edit": cmd_edit,
    "forward": cmd_forward,
    "receive": cmd_receive,
    "scan": cmd_scan,
    "list": cmd_list,
    "show": cmd_show,
    "history": cmd_history,
    "bulk-receive": cmd_bulk_receive,
    "bulk-delete": cmd_bulk_delete,
    "delete": cmd_delete,
    "summarize": cmd_summarize,
    "slip": cmd_slip,
}


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="docutrack",
        description="DocuTrack - inter-office document routing and tracking",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", default=None, help="Logging level (default from DOCUTRACK_LOG_LEVEL)")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    register_parser = subparsers.add_parser("register", help="Register a user and log in")
    register_parser.add_argument("--name", required=True)
    register_parser.add_argument("--credential", required=True)
    register_parser.add_argument("--office", required=True, type=_office_arg)

    login_parser = subparsers.add_parser("login", help="Log in as an existing user")
    login_parser.add_argument("--name", required=True)
    login_parser.add_argument("--credential", required=True)

    subparsers.add_parser("logout", help="End the current session")
    subparsers.add_parser("whoami", help="Show the logged-in user")
    subparsers.add_parser("offices", help="List offices")

    create_cmd = subparsers.add_parser("create", help="Create a document and send it to an office")
    create_cmd.add_argument("--title", required=True)
    create_cmd.add_argument("--to", required=True, type=_office_arg, metavar="OFFICE")
    create_cmd.add_argument("--status", type=_status_arg, default=Status.DRAFT)
    create_cmd.add_argument("--summary")
    create_cmd.add_argument("--content")
    create_cmd.add_argument("--file", metavar="PATH", help="Attach a file")

    edit_cmd = subparsers.add_parser("edit", help="Edit a document's content fields")
    edit_cmd.add_argument("id")
    edit_cmd.add_argument("--title")
    edit_cmd.add_argument("--status", type=_status_arg)
    edit_cmd.add_argument("--summary")
    edit_cmd.add_argument("--content")
    attachment_group = edit_cmd.add_mutually_exclusive_group()
    attachment_group.add_argument("--file", metavar="PATH", help="Replace the attachment")
    attachment_group.add_argument("--remove-file", action="store_true", help="Remove the attachment")

    forward_cmd = subparsers.add_parser("forward", help="Forward a document to another office")
    forward_cmd.add_argument("id")
    forward_cmd.add_argument("--to", required=True, type=_office_arg, metavar="OFFICE")

    receive_cmd = subparsers.add_parser("receive", help="Receive a document at its current office")
    receive_cmd.add_argument("id")

    scan_cmd = subparsers.add_parser("scan", help="Receive a document by scanning its slip QR code")
    scan_cmd.add_argument("--image", metavar="PATH", help="Decode from an image instead of the camera")

    list_cmd = subparsers.add_parser("list", help="List documents in a view")
    list_cmd.add_argument("--view", choices=[v.value for v in View], default=View.INBOX.value)
    list_cmd.add_argument("--search", metavar="TERM")

    show_cmd = subparsers.add_parser("show", help="Show a document")
    show_cmd.add_argument("id")

    history_cmd = subparsers.add_parser("history", help="Show a document's tracking history")
    history_cmd.add_argument("id")

    bulk_receive_cmd = subparsers.add_parser("bulk-receive", help="Receive several documents")
    bulk_receive_cmd.add_argument("ids", nargs="+", metavar="ID")

    bulk_delete_cmd = subparsers.add_parser("bulk-delete", help="Delete several documents")
    bulk_delete_cmd.add_argument("ids", nargs="+", metavar="ID")
    bulk_delete_cmd.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")

    delete_cmd = subparsers.add_parser("delete", help="Delete a document")
    delete_cmd.add_argument("id")

    summarize_cmd = subparsers.add_parser("summarize", help="Generate and store an AI summary")
    summarize_cmd.add_argument("id")

    slip_cmd = subparsers.add_parser("slip", help="Render a document's tracking slip")
    slip_cmd.add_argument("id")
    slip_cmd.add_argument("--output", metavar="PATH", help="Write the PDF here instead of the slip directory")

    return parser


def main(argv: Optional[List[str]] = None, app: Optional[DocuTrackApp] = None) -> int:
    """Main entry point.

    Args:
        argv: Arguments (defaults to sys.argv[1:])
        app: Prebuilt application; created from the environment if None

    Exit codes:
        0: Success
        1: DocuTrackError or failed login/scan
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    owns_app = app is None
    if app is None:
        settings = Settings.from_env()
        configure_logging(args.log_level or settings.log_level)
        app = create_app(settings)

    try:
        return COMMANDS[args.command](app, args)
    except DocuTrackError as e:
        print(e.message, file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 1
    finally:
        if owns_app:
            app.close()


if __name__ == "__main__":
    sys.exit(main())
