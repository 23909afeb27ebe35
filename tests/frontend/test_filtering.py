# tests/frontend/test_filtering.py
"""
Tests para el filtrado y ordenamiento en el navegador.
"""

import pytest

from portal.web.frontend.utils import build_search_params
from portal.web.frontend.utils.filtering import (
    filter_faqs,
    filter_opas,
    filter_tramites,
    normalize_boolean,
    parse_tri_state,
    sort_data,
)

DEP_HACIENDA = "6f1c1f8e-1d2b-4a3c-9e4f-0a1b2c3d4e5f"
DEP_GOBIERNO = "8192a3b4-0000-4000-8000-000000000008"
SUB_RENTAS = "2b3c4d5e-0000-4000-8000-000000000002"


class TestFilterTramites:
    def test_sin_filtros_devuelve_todo(self, sample_tramites):
        assert filter_tramites(sample_tramites) == sample_tramites

    def test_texto_sin_tildes(self, sample_tramites):
        resultado = filter_tramites(sample_tramites, search_term="construccion")
        assert [t["id"] for t in resultado] == ["t3"]

    def test_texto_en_dependencia(self, sample_tramites):
        resultado = filter_tramites(sample_tramites, search_term="gobierno")
        assert [t["id"] for t in resultado] == ["t2"]

    def test_por_ubicacion(self, sample_tramites):
        assert len(filter_tramites(sample_tramites, dependencia_id=DEP_HACIENDA)) == 2
        assert [t["id"] for t in filter_tramites(sample_tramites, subdependencia_id=SUB_RENTAS, activo=True)] == ["t1"]

    def test_pago_con_valores_numericos(self, sample_tramites):
        resultado = filter_tramites(sample_tramites, tiene_pago=True)
        assert [t["id"] for t in resultado] == ["t1", "t3"]

    def test_no_modifica_la_entrada(self, sample_tramites):
        copia = list(sample_tramites)
        filter_tramites(sample_tramites, search_term="predial", activo=True)
        assert sample_tramites == copia


class TestFilterOpas:
    def test_busca_en_codigo_opa(self):
        opas = [
            {"id": "o1", "codigo_opa": "OPA-010", "nombre": "Certificado de residencia", "activo": True},
            {"id": "o2", "codigo_opa": "OPA-020", "nombre": "Permiso de eventos", "activo": False},
        ]
        assert [o["id"] for o in filter_opas(opas, search_term="opa-020")] == ["o2"]
        assert [o["id"] for o in filter_opas(opas, activo=True)] == ["o1"]


class TestFilterFaqs:
    def test_busca_en_pregunta_y_palabras_clave(self, sample_faqs):
        assert [f["id"] for f in filter_faqs(sample_faqs, search_term="pago")] == ["f1"]

    def test_tema_del_catalogo_o_texto_libre(self, sample_faqs):
        assert [f["id"] for f in filter_faqs(sample_faqs, tema="impuestos")] == ["f1"]
        assert [f["id"] for f in filter_faqs(sample_faqs, tema="atencion")] == ["f2"]

    def test_por_dependencia(self, sample_faqs):
        assert [f["id"] for f in filter_faqs(sample_faqs, dependencia_id=DEP_GOBIERNO)] == ["f2"]


class TestSortData:
    def test_orden_ascendente_sin_mayusculas(self):
        data = [{"nombre": "beta"}, {"nombre": "Alfa"}, {"nombre": "gamma"}]
        assert [d["nombre"] for d in sort_data(data, "nombre")] == ["Alfa", "beta", "gamma"]

    def test_nulos_al_final_en_ambas_direcciones(self):
        data = [{"orden": None}, {"orden": 2}, {"orden": 1}]

        assert [d["orden"] for d in sort_data(data, "orden", "asc")] == [1, 2, None]
        assert [d["orden"] for d in sort_data(data, "orden", "desc")] == [2, 1, None]

    def test_key_mapping(self):
        data = [{"requisitos": ["a", "b"]}, {"requisitos": ["a"]}]
        ordenados = sort_data(data, "requisitos", key_mapping={"requisitos": lambda x: len(x["requisitos"])})
        assert [len(d["requisitos"]) for d in ordenados] == [1, 2]

    def test_lista_vacia(self):
        assert sort_data([], "nombre") == []


class TestBooleanos:
    @pytest.mark.parametrize(
        "valor,esperado",
        [(None, False), (1, True), (0, False), ("1", True), ("false", False), ("Sí", True), ("", False)],
    )
    def test_normalize_boolean(self, valor, esperado):
        assert normalize_boolean(valor) is esperado

    @pytest.mark.parametrize(
        "valor,esperado", [("all", None), ("", None), (None, None), ("true", True), ("false", False)]
    )
    def test_parse_tri_state(self, valor, esperado):
        assert parse_tri_state(valor) is esperado


class TestBuildSearchParams:
    def test_descarta_vacios_y_recorta(self):
        params = build_search_params(
            {"query": "  predial ", "tipo": "all", "dependencia": "", "page": 2, "tiene_pago": None, "activo": False}
        )
        assert params == {"query": "predial", "page": 2, "activo": False}
