# src/portal/common/text_utils.py
"""
Normalización de texto para búsquedas en español.

Las búsquedas del portal ignoran tildes, mayúsculas y signos de puntuación:
"Certificación" y "certificacion" deben encontrar lo mismo.
"""

import re
import unicodedata
from typing import List, Optional

_MARCAS_COMBINANTES = re.compile(r"[\u0300-\u036f]")
_NO_PALABRA = re.compile(r"[^\w\s]")
_ESPACIOS = re.compile(r"\s+")

# Sin tildes: se comparan contra palabras ya normalizadas.
STOP_WORDS = frozenset(
    {
        "el", "la", "los", "las", "un", "una", "unos", "unas", "de", "del", "al", "que", "en", "por",
        "para", "con", "sin", "como", "cual", "donde", "mi", "me", "se", "su", "sus", "es", "son",
        "hay", "puedo", "quiero", "necesito", "lo", "le", "les", "cuando", "este", "esta",
    }
)  # fmt: skip


def normalize_text(text: Optional[str]) -> str:
    """Quita tildes y pasa a minúsculas."""
    if not text:
        return ""
    descompuesto = unicodedata.normalize("NFD", str(text))
    return _MARCAS_COMBINANTES.sub("", descompuesto).lower()


def normalize_for_search(text: Optional[str]) -> str:
    """Como normalize_text, pero además elimina puntuación y espacios redundantes."""
    normalizado = _NO_PALABRA.sub(" ", normalize_text(text))
    return _ESPACIOS.sub(" ", normalizado).strip()


def levenshtein_distance(a: str, b: str) -> int:
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previa = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        actual = [i]
        for j, cb in enumerate(b, start=1):
            costo = 0 if ca == cb else 1
            actual.append(min(previa[j] + 1, actual[j - 1] + 1, previa[j - 1] + costo))
        previa = actual
    return previa[-1]


def search_matches(query: Optional[str], target: Optional[str], whole_word: bool = False, fuzzy: bool = False) -> bool:
    """
    Indica si `query` aparece en `target` sin distinguir tildes ni mayúsculas.

    Con `fuzzy`, una palabra del objetivo también coincide si su distancia de
    edición a la consulta es como máximo el 20% de la longitud de la consulta.
    """
    consulta = normalize_for_search(query)
    if not consulta:
        return True
    objetivo = normalize_for_search(target)
    if not objetivo:
        return False

    if whole_word:
        if re.search(rf"\b{re.escape(consulta)}\b", objetivo):
            return True
    elif consulta in objetivo:
        return True

    if fuzzy:
        max_distancia = int(len(consulta) * 0.2)
        return any(levenshtein_distance(consulta, palabra) <= max_distancia for palabra in objetivo.split())
    return False


def highlight_matches(text: Optional[str], query: Optional[str], tag: str = "mark") -> str:
    """Envuelve en <mark> las apariciones de la consulta conservando el texto original."""
    if not text:
        return ""
    consulta = normalize_text(query).strip()
    if not consulta:
        return text

    # normalize_text conserva la longitud carácter a carácter para el alfabeto latino
    # salvo en los caracteres compuestos, que se descomponen antes de comparar.
    base = "".join(normalize_text(c) or c for c in text)
    if len(base) != len(text):
        return text

    partes = []
    cursor = 0
    inicio = base.find(consulta)
    while inicio != -1:
        fin = inicio + len(consulta)
        partes.append(text[cursor:inicio])
        partes.append(f"<{tag}>{text[inicio:fin]}</{tag}>")
        cursor = fin
        inicio = base.find(consulta, fin)
    partes.append(text[cursor:])
    return "".join(partes)


def extract_keywords(text: Optional[str]) -> List[str]:
    """Palabras significativas (más de 2 letras, sin stop words), únicas y en orden."""
    vistas = set()
    palabras = []
    for palabra in normalize_for_search(text).split():
        if len(palabra) <= 2 or palabra in STOP_WORDS or palabra in vistas:
            continue
        vistas.add(palabra)
        palabras.append(palabra)
    return palabras
