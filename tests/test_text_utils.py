"""Tests para la normalización de texto en español."""

import pytest

from portal.common.text_utils import (
    extract_keywords,
    highlight_matches,
    levenshtein_distance,
    normalize_for_search,
    normalize_text,
    search_matches,
)


class TestNormalizacion:
    def test_quita_tildes_y_mayusculas(self):
        assert normalize_text("Certificación de Residencia") == "certificacion de residencia"

    def test_enie_se_conserva_como_n(self):
        assert normalize_text("Año") == "ano"

    def test_vacios(self):
        assert normalize_text(None) == ""
        assert normalize_for_search("") == ""

    def test_elimina_puntuacion_y_espacios(self):
        assert normalize_for_search("  ¿Dónde   pago el predial?  ") == "donde pago el predial"


class TestSearchMatches:
    @pytest.mark.parametrize(
        "query,target",
        [
            ("certificacion", "Certificación de residencia"),
            ("PREDIAL", "Impuesto predial unificado"),
            ("", "cualquier cosa"),
        ],
    )
    def test_coincide(self, query, target):
        assert search_matches(query, target)

    def test_objetivo_vacio(self):
        assert not search_matches("predial", None)

    def test_palabra_completa(self):
        assert search_matches("pago", "Pago en línea", whole_word=True)
        assert not search_matches("pag", "Pago en línea", whole_word=True)

    def test_fuzzy_tolera_errores_de_digitacion(self):
        assert not search_matches("licensia", "Licencia de construcción")
        assert search_matches("licensia", "Licencia de construcción", fuzzy=True)


class TestLevenshtein:
    def test_distancias(self):
        assert levenshtein_distance("casa", "casa") == 0
        assert levenshtein_distance("", "abc") == 3
        assert levenshtein_distance("kitten", "sitting") == 3


class TestHighlight:
    def test_respeta_el_texto_original(self):
        assert highlight_matches("Certificación catastral", "certificacion") == "<mark>Certificación</mark> catastral"

    def test_varias_apariciones(self):
        assert highlight_matches("pago y PAGO", "pago") == "<mark>pago</mark> y <mark>PAGO</mark>"

    def test_sin_consulta(self):
        assert highlight_matches("Texto", "") == "Texto"
        assert highlight_matches(None, "x") == ""


class TestExtractKeywords:
    def test_descarta_stop_words_y_palabras_cortas(self):
        assert extract_keywords("¿Cómo puedo pagar el impuesto predial en Chía?") == [
            "pagar",
            "impuesto",
            "predial",
            "chia",
        ]

    def test_sin_repetidos(self):
        assert extract_keywords("licencia licencia Licencia") == ["licencia"]
