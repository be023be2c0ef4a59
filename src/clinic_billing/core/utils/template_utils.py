import re
from collections.abc import Mapping

PLACEHOLDER_RE = re.compile(r"\{\{(\w+)\}\}")


def render_message(template_str: str, context: Mapping[str, object], known_keys: frozenset[str] | None = None) -> str:
    """
    Substitui placeholders no formato {{var}} pelos valores de `context`.

    Placeholders desconhecidos permanecem literais no texto. Quando
    `known_keys` é informado, uma variável conhecida sem valor vira "".

    Exemplo:
        render_message("Olá {{nome}}, {{x}}", {"nome": "Maria"})
        -> "Olá Maria, {{x}}"
    """
    def _replace(match: re.Match) -> str:
        key = match.group(1)
        value = context.get(key)
        if value is not None:
            return str(value)
        if known_keys is not None and key in known_keys:
            return ""
        if key in context:
            return ""
        return match.group(0)

    return PLACEHOLDER_RE.sub(_replace, template_str)
