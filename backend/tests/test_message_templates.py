"""
TESTES - TEMPLATES DE MENSAGENS
================================

Saudação por horário de Brasília, formatação de data/hora e textos.
"""

from datetime import date, datetime, time, timezone

import pytest

from src.domain.entities import MessageType
from src.domain.exceptions import TemplateRenderError
from src.domain.services.message_templates import (
    format_meeting_date,
    format_meeting_time,
    get_first_name,
    get_greeting,
    render_message,
)


def _utc(hour: int, minute: int = 0) -> datetime:
    # São Paulo = UTC-3
    return datetime(2025, 10, 17, hour, minute, tzinfo=timezone.utc)


# =============================================================================
# SAUDAÇÃO
# =============================================================================

@pytest.mark.parametrize("utc_hour,utc_minute,expected", [
    (8, 0, "Bom dia"),      # 05:00 local
    (14, 59, "Bom dia"),    # 11:59 local
    (15, 0, "Boa tarde"),   # 12:00 local
    (20, 59, "Boa tarde"),  # 17:59 local
    (21, 0, "Boa noite"),   # 18:00 local
    (7, 59, "Boa noite"),   # 04:59 local
])
def test_greeting_buckets_use_sao_paulo_time(utc_hour, utc_minute, expected):
    assert get_greeting(_utc(utc_hour, utc_minute)) == expected


def test_first_name():
    assert get_first_name("Maria Clara Souza") == "Maria"
    assert get_first_name("  Pedro ") == "Pedro"
    assert get_first_name("") == ""
    assert get_first_name(None) == ""


# =============================================================================
# DATA E HORA
# =============================================================================

def test_format_meeting_date_portuguese():
    assert format_meeting_date(date(2025, 10, 17)) == "sexta-feira, 17 de outubro"
    assert format_meeting_date("2025-03-02") == "domingo, 2 de março"


def test_format_meeting_date_converts_aware_datetime_to_local_day():
    # 01:00 UTC do dia 18 ainda é dia 17 em São Paulo
    value = datetime(2025, 10, 18, 1, 0, tzinfo=timezone.utc)
    assert format_meeting_date(value) == "sexta-feira, 17 de outubro"


def test_format_meeting_time():
    assert format_meeting_time(time(9, 5)) == "09:05"
    assert format_meeting_time("14:30") == "14:30"
    assert format_meeting_time("2025-10-17T17:30:00Z") == "14:30"


@pytest.mark.parametrize("value", [None, "", "not-a-date", "2025-13-40"])
def test_invalid_date_raises(value):
    with pytest.raises(TemplateRenderError):
        format_meeting_date(value)


@pytest.mark.parametrize("value", [None, "25:99", "tarde"])
def test_invalid_time_raises(value):
    with pytest.raises(TemplateRenderError):
        format_meeting_time(value)


# =============================================================================
# TEXTOS
# =============================================================================

def test_welcome_text():
    text = render_message(MessageType.WELCOME, "João da Silva", now=_utc(13))

    assert text.startswith("Olá João, bom dia, tudo bom?")
    assert "se cadastrou" in text


def test_abandoned_text():
    text = render_message(MessageType.PAYMENT_ABANDONED, "Ana Lima", now=_utc(22))

    assert text.startswith("Olá Ana, boa noite, tudo bom?")
    assert "gerou um pagamento" in text


def test_confirmed_text_includes_meeting():
    text = render_message(
        MessageType.PAYMENT_CONFIRMED,
        "Carlos",
        meeting_date=date(2025, 10, 17),
        meeting_time=time(14, 30),
        now=_utc(16),
    )

    assert text.startswith("Olá Carlos, boa tarde, tudo bom?")
    assert "seu horário é às 14:30" in text
    assert "te espero no dia sexta-feira, 17 de outubro às 14:30 pelo discord" in text


def test_confirmed_without_meeting_raises():
    with pytest.raises(TemplateRenderError):
        render_message(MessageType.PAYMENT_CONFIRMED, "Carlos", now=_utc(16))


def test_render_accepts_string_type():
    text = render_message("LEAD_WELCOME", "Bia", now=_utc(13))
    assert text.startswith("Olá Bia")


def test_unknown_type_raises():
    with pytest.raises(TemplateRenderError):
        render_message("BIRTHDAY", "Bia")
