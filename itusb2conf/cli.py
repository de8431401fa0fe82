"""Typer CLI entrypoint."""

from __future__ import annotations

import typer

from itusb2conf.core.errors import Itusb2ConfError
from itusb2conf.core.model import Outcome, StepFailure
from itusb2conf.core.service import ProvisioningService

app = typer.Typer(
    help="Configure and lock the OTP ROM of an ITUSB2 USB Test Switch (Rev. 0)",
    add_completion=False,
)


def _confirm() -> bool:
    """Only an answer starting with Y or y confirms; anything else, EOF included, cancels."""
    typer.echo("Device is blank.")
    try:
        answer = typer.prompt("Do you wish to configure it? [y/N]", default="", show_default=False)
    except typer.Abort:
        typer.echo()
        return False
    return answer.strip()[:1] in ("y", "Y")


def _report_failure(failure: StepFailure) -> None:
    typer.echo(f"Error: {failure.message} ({failure.title}).", err=True)


@app.command()
def configure(
    serial: str = typer.Argument(
        metavar="SERIALNUMBER",
        help="Serial number of the device to configure, as currently reported over USB",
    ),
) -> None:
    """Configure a blank device and permanently lock its OTP ROM."""
    try:
        service = ProvisioningService()
        result = service.provision(serial, confirm=_confirm, on_failure=_report_failure)
    except Itusb2ConfError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    if result.outcome is Outcome.NOT_BLANK:
        typer.echo("Device is not blank.")
    elif result.outcome is Outcome.CANCELED:
        typer.echo("Device configuration canceled.")
    elif result.outcome is Outcome.CONFIGURED:
        # No read-back: the new descriptors only show up after re-enumeration.
        typer.echo("Device is now configured.")
        typer.echo(f"Serial number: {result.serial_number}")
    else:
        if result.serial_number is not None and not result.locked:
            typer.echo(
                "The OTP ROM was left unlocked. Check the connection and run the command again.",
                err=True,
            )
        elif result.locked:
            typer.echo(
                f"The OTP ROM was locked with serial number {result.serial_number}, "
                "but the device could not be reset. Replug it to apply the new configuration.",
                err=True,
            )
        raise typer.Exit(code=1)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
