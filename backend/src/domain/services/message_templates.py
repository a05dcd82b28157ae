"""
TEMPLATES DE MENSAGENS DO WHATSAPP
==================================

Funções puras que montam o texto de cada mensagem da fila.
Sem acesso a banco ou rede.

Mensagens:
1. Boas-vindas (LEAD_WELCOME): 2 min após o cadastro, se não houve pagamento
2. Pagamento abandonado (PAYMENT_ABANDONED): gerou PIX/cartão e não pagou
3. Pagamento confirmado (PAYMENT_CONFIRMED): com data e hora da reunião

A saudação usa o horário de Brasília:
- 05:00-11:59 -> "Bom dia"
- 12:00-17:59 -> "Boa tarde"
- resto       -> "Boa noite"
"""

from datetime import date, datetime, time
from typing import Optional, Union
from zoneinfo import ZoneInfo

from src.domain.entities.enums import MessageType
from src.domain.exceptions import TemplateRenderError

DEFAULT_TIMEZONE = "America/Sao_Paulo"

WEEKDAY_NAMES = {
    0: "segunda-feira",
    1: "terça-feira",
    2: "quarta-feira",
    3: "quinta-feira",
    4: "sexta-feira",
    5: "sábado",
    6: "domingo",
}

MONTH_NAMES = {
    1: "janeiro",
    2: "fevereiro",
    3: "março",
    4: "abril",
    5: "maio",
    6: "junho",
    7: "julho",
    8: "agosto",
    9: "setembro",
    10: "outubro",
    11: "novembro",
    12: "dezembro",
}

DateInput = Union[date, datetime, str, None]
TimeInput = Union[time, datetime, str, None]


# =============================================================================
# HELPERS
# =============================================================================

def get_greeting(now: Optional[datetime] = None, timezone_name: str = DEFAULT_TIMEZONE) -> str:
    """Retorna "Bom dia", "Boa tarde" ou "Boa noite" pelo horário local."""
    tz = ZoneInfo(timezone_name)
    local_now = now.astimezone(tz) if now is not None else datetime.now(tz)
    hour = local_now.hour

    if 5 <= hour < 12:
        return "Bom dia"
    if 12 <= hour < 18:
        return "Boa tarde"
    return "Boa noite"


def get_first_name(full_name: Optional[str]) -> str:
    parts = (full_name or "").split()
    return parts[0] if parts else ""


def _parse_date(value: DateInput, timezone_name: str) -> date:
    if value is None:
        raise TemplateRenderError("Data da reunião ausente")

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(ZoneInfo(timezone_name))
        return value.date()

    if isinstance(value, date):
        return value

    if isinstance(value, str):
        try:
            if "T" in value or " " in value.strip():
                return _parse_date(datetime.fromisoformat(value.strip().replace("Z", "+00:00")), timezone_name)
            return date.fromisoformat(value.strip())
        except ValueError as e:
            raise TemplateRenderError(f"Data da reunião inválida: {value!r}") from e

    raise TemplateRenderError(f"Tipo de data não suportado: {type(value).__name__}")


def _parse_time(value: TimeInput, timezone_name: str) -> time:
    if value is None:
        raise TemplateRenderError("Horário da reunião ausente")

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(ZoneInfo(timezone_name))
        return value.time()

    if isinstance(value, time):
        return value

    if isinstance(value, str):
        raw = value.strip()
        try:
            if "T" in raw or "-" in raw:
                return _parse_time(datetime.fromisoformat(raw.replace("Z", "+00:00")), timezone_name)
            return time.fromisoformat(raw)
        except ValueError as e:
            raise TemplateRenderError(f"Horário da reunião inválido: {value!r}") from e

    raise TemplateRenderError(f"Tipo de horário não suportado: {type(value).__name__}")


def format_meeting_date(value: DateInput, timezone_name: str = DEFAULT_TIMEZONE) -> str:
    """
    Formata a data no padrão brasileiro por extenso.

    Exemplo: "sexta-feira, 17 de outubro"
    """
    day = _parse_date(value, timezone_name)
    return f"{WEEKDAY_NAMES[day.weekday()]}, {day.day} de {MONTH_NAMES[day.month]}"


def format_meeting_time(value: TimeInput, timezone_name: str = DEFAULT_TIMEZONE) -> str:
    """Formata o horário em 24h. Exemplo: "14:30" """
    return _parse_time(value, timezone_name).strftime("%H:%M")


# =============================================================================
# TEMPLATES
# =============================================================================

def lead_welcome(
    name: str,
    now: Optional[datetime] = None,
    timezone_name: str = DEFAULT_TIMEZONE,
) -> str:
    greeting = get_greeting(now, timezone_name).lower()
    first_name = get_first_name(name)
    return (
        f"Olá {first_name}, {greeting}, tudo bom? Vi que você se cadastrou pra "
        f"otimização, se tiver algum problema ou dúvida pode me avisar"
    )


def payment_abandoned(
    name: str,
    now: Optional[datetime] = None,
    timezone_name: str = DEFAULT_TIMEZONE,
) -> str:
    greeting = get_greeting(now, timezone_name).lower()
    first_name = get_first_name(name)
    return (
        f"Olá {first_name}, {greeting}, tudo bom? Vi que você gerou um pagamento mas "
        f"não confirmou, se tiver tido algum problema ou tiver alguma dúvida, só falar"
    )


def payment_confirmed(
    name: str,
    meeting_date: DateInput,
    meeting_time: TimeInput,
    now: Optional[datetime] = None,
    timezone_name: str = DEFAULT_TIMEZONE,
) -> str:
    # Formata antes de tudo: data inválida tem que estourar aqui
    formatted_date = format_meeting_date(meeting_date, timezone_name)
    formatted_time = format_meeting_time(meeting_time, timezone_name)

    greeting = get_greeting(now, timezone_name).lower()
    first_name = get_first_name(name)
    return (
        f"Olá {first_name}, {greeting}, tudo bom? Vi que você efetivou a compra da "
        f"otimização, seu horário é às {formatted_time} e demoramos 4 horas pra fazer "
        f"a otimização, caso queira remarcar, só me avisar, te espero no dia "
        f"{formatted_date} às {formatted_time} pelo discord, forte abraço"
    )


def render_message(
    message_type: Union[MessageType, str],
    lead_name: str,
    meeting_date: DateInput = None,
    meeting_time: TimeInput = None,
    now: Optional[datetime] = None,
    timezone_name: str = DEFAULT_TIMEZONE,
) -> str:
    """
    Monta o texto de acordo com o tipo da mensagem.

    Raises:
        TemplateRenderError: tipo desconhecido ou dados da reunião ausentes/inválidos
    """
    try:
        kind = MessageType(message_type)
    except ValueError as e:
        raise TemplateRenderError(f"Tipo de mensagem desconhecido: {message_type}") from e

    if kind is MessageType.WELCOME:
        return lead_welcome(lead_name, now, timezone_name)

    if kind is MessageType.PAYMENT_ABANDONED:
        return payment_abandoned(lead_name, now, timezone_name)

    return payment_confirmed(lead_name, meeting_date, meeting_time, now, timezone_name)
