"""
Formatação no padrão brasileiro para faturas e mensagens.
Moeda, datas, nomes de meses e dias da semana.
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

CENTS = Decimal("0.01")


class BrazilianFormatter:
    """Formata dados no padrão brasileiro sem depender do locale do sistema."""

    MONTH_NAMES = {
        1: "Janeiro", 2: "Fevereiro", 3: "Março", 4: "Abril",
        5: "Maio", 6: "Junho", 7: "Julho", 8: "Agosto",
        9: "Setembro", 10: "Outubro", 11: "Novembro", 12: "Dezembro",
    }

    # 0 = domingo, mesma convenção de AppointmentRecurrence.day_of_week
    WEEK_DAYS = {
        0: "Domingo", 1: "Segunda", 2: "Terça", 3: "Quarta",
        4: "Quinta", 5: "Sexta", 6: "Sábado",
    }

    @staticmethod
    def to_money(value: Union[int, float, Decimal, str, None]) -> Decimal:
        """Converte para Decimal com 2 casas (arredondamento comercial)."""
        if value is None:
            return Decimal("0.00")
        return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)

    @staticmethod
    def format_currency(value: Union[int, float, Decimal, str, None], symbol: str = "R$") -> str:
        """
        Formata valores monetários no padrão brasileiro.

        >>> BrazilianFormatter.format_currency(Decimal("1234.5"))
        'R$ 1.234,50'
        """
        amount = BrazilianFormatter.to_money(value)
        sign = "-" if amount < 0 else ""
        formatted = f"{abs(amount):,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
        return f"{sign}{symbol} {formatted}"

    @staticmethod
    def format_date(value: Union[date, datetime, None]) -> str:
        if value is None:
            return ""
        return value.strftime("%d/%m/%Y")

    @staticmethod
    def format_day_month(value: Union[date, datetime]) -> str:
        return value.strftime("%d/%m")

    @staticmethod
    def month_name(month: int) -> str:
        return BrazilianFormatter.MONTH_NAMES.get(month, "")

    @staticmethod
    def week_day(day_of_week: int) -> str:
        return BrazilianFormatter.WEEK_DAYS.get(day_of_week, "")


def billing_fee_label(billing_mode: str | None) -> str:
    """Rótulo do campo de valor do paciente conforme o modo de cobrança."""
    return "Valor Mensal" if billing_mode == "MONTHLY_FIXED" else "Valor da Sessão"
