"""
Error taxonomy for the ticket selection engine.

Every error carries a code and a user-safe message (Spanish, shown as a toast).
Views catch these at the boundary; none of them is fatal.
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(Enum):
    OCCUPIED_TICKET_SELECTED = "OCCUPIED_TICKET_SELECTED"
    TICKET_OUT_OF_RANGE = "TICKET_OUT_OF_RANGE"
    INSUFFICIENT_AVAILABILITY = "INSUFFICIENT_AVAILABILITY"
    INVALID_RAFFLE_STATE = "INVALID_RAFFLE_STATE"
    ORDER_SUBMISSION_FAILURE = "ORDER_SUBMISSION_FAILURE"


class BoletosError(Exception):
    """Base error with code and user-safe message."""

    code: ErrorCode
    title = "Error"

    def __init__(self, code: ErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class OccupiedTicketSelected(BoletosError):
    title = "Boleto ocupado"

    def __init__(self, ticket: int) -> None:
        super().__init__(
            ErrorCode.OCCUPIED_TICKET_SELECTED,
            "Este boleto ya está ocupado. Por favor selecciona otro.",
        )
        self.ticket = ticket


class TicketOutOfRange(BoletosError):
    title = "Boleto inválido"

    def __init__(self, ticket, total_tickets: int) -> None:
        super().__init__(
            ErrorCode.TICKET_OUT_OF_RANGE,
            f"El boleto {ticket} no existe en esta rifa (1 a {total_tickets}).",
        )
        self.ticket = ticket
        self.total_tickets = total_tickets


class InsufficientAvailability(BoletosError):
    title = "No hay suficientes boletos"

    def __init__(self, requested: int, available: int) -> None:
        super().__init__(
            ErrorCode.INSUFFICIENT_AVAILABILITY,
            f"Solo quedan {available} boletos disponibles.",
        )
        self.requested = requested
        self.available = available


class InvalidRaffleState(BoletosError):
    title = "Rifa no disponible"

    def __init__(self, message: str = "Esta rifa no tiene boletos disponibles.") -> None:
        super().__init__(ErrorCode.INVALID_RAFFLE_STATE, message)


class OrderSubmissionFailure(BoletosError):
    title = "No se pudo crear tu apartado"

    def __init__(self, detail: str = "") -> None:
        message = "Hubo un error al crear tu apartado. Tus boletos siguen seleccionados, intenta de nuevo."
        if detail:
            message = f"{message} ({detail})"
        super().__init__(ErrorCode.ORDER_SUBMISSION_FAILURE, message)
        self.detail = detail
