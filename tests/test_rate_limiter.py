"""Tests para el límite de peticiones del asistente virtual."""

from portal.web.backend.rate_limiter import RateLimiter, obtener_identificador_cliente


class TestRateLimiter:
    def test_permite_hasta_el_maximo(self):
        limiter = RateLimiter(max_requests=3, window_seconds=60)

        assert all(limiter.permitir("ip:1", ahora=t) for t in (0, 1, 2))
        assert not limiter.permitir("ip:1", ahora=3)

    def test_ventana_deslizante(self):
        limiter = RateLimiter(max_requests=2, window_seconds=10)
        limiter.permitir("ip:1", ahora=0)
        limiter.permitir("ip:1", ahora=5)

        assert not limiter.permitir("ip:1", ahora=9)
        # A los 10 s la primera petición sale de la ventana
        assert limiter.permitir("ip:1", ahora=10)

    def test_identificadores_independientes(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60)

        assert limiter.permitir("ip:1", ahora=0)
        assert limiter.permitir("ip:2", ahora=0)
        assert not limiter.permitir("ip:1", ahora=1)

    def test_segundos_para_reintentar(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60)
        assert limiter.segundos_para_reintentar("ip:1", ahora=0) == 0

        limiter.permitir("ip:1", ahora=0)

        assert limiter.segundos_para_reintentar("ip:1", ahora=20) == 41

    def test_consultas_no_registran_identificadores(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60)

        assert limiter.segundos_para_reintentar("ip:1", ahora=0) == 0
        assert limiter._hits == {}

    def test_limpia_identificadores_inactivos(self):
        limiter = RateLimiter(max_requests=5, window_seconds=1)
        for i in range(10_000):
            limiter.permitir(f"ip:{i}", ahora=0)

        limiter.permitir("ip:nuevo", ahora=10_000)

        assert list(limiter._hits) == ["ip:nuevo"]

    def test_reset(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60)
        limiter.permitir("ip:1")
        limiter.reset()

        assert limiter.restantes("ip:1") == 1


class TestIdentificadorCliente:
    def test_prioridad_usuario_sesion_telefono(self):
        assert obtener_identificador_cliente({}, user_id="u1", session_token="s1") == "user:u1"
        assert obtener_identificador_cliente({}, session_token="s1", phone_number="300") == "session:s1"
        assert obtener_identificador_cliente({}, phone_number="300") == "phone:300"

    def test_primer_salto_de_x_forwarded_for(self):
        headers = {"x-forwarded-for": "190.1.1.1, 10.0.0.1", "x-real-ip": "10.0.0.2"}
        assert obtener_identificador_cliente(headers, client_host="127.0.0.1") == "ip:190.1.1.1"

    def test_x_real_ip_y_host(self):
        assert obtener_identificador_cliente({"x-real-ip": "10.0.0.2"}) == "ip:10.0.0.2"
        assert obtener_identificador_cliente({}, client_host="127.0.0.1") == "ip:127.0.0.1"
        assert obtener_identificador_cliente({}) == "ip:unknown"
