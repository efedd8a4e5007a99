"""
Tests for the admin endpoints: authorization, plans, orders, users and statistics
"""
from datetime import timedelta

import pytest

from models.enums import UserStatus
from utils.shared_utils import parse_datetime, to_iso, utcnow


@pytest.mark.parametrize("method, path", [
    ("get", "/api/admin/planos"),
    ("post", "/api/admin/planos"),
    ("get", "/api/admin/pedidos"),
    ("put", "/api/admin/pedidos/1"),
    ("post", "/api/admin/pedidos/1/credenciais"),
    ("get", "/api/admin/usuarios"),
    ("get", "/api/admin/usuarios/abc"),
    ("get", "/api/admin/solicitacoes-teste"),
    ("put", "/api/admin/solicitacoes-teste/1"),
    ("get", "/api/admin/estatisticas"),
])
def test_admin_routes_forbid_customers(client, customer, method, path):
    response = getattr(client, method)(path, headers=customer["headers"])

    assert response.status_code == 403
    assert response.json() == {"error": "Acesso negado. Apenas administradores."}


def test_admin_routes_require_token(client):
    assert client.get("/api/admin/estatisticas").status_code == 401


def test_plan_management(client, fake_db, admin, plans):
    created = client.post(
        "/api/admin/planos",
        headers=admin["headers"],
        json={"nome": "Anual", "descricao": "12 meses", "preco": 249.9, "duracao_dias": 365},
    )
    assert created.status_code == 201
    assert created.json()["ativo"] is True

    all_plans = client.get("/api/admin/planos", headers=admin["headers"]).json()
    assert all_plans[0]["nome"] == "Anual"
    assert len(all_plans) == 4

    plan_id = created.json()["id"]
    updated = client.put(f"/api/admin/planos/{plan_id}", headers=admin["headers"], json={"ativo": False})
    assert updated.status_code == 200
    assert fake_db.row("planos", plan_id)["ativo"] is False

    assert client.put("/api/admin/planos/999", headers=admin["headers"], json={"nome": "X"}).status_code == 404


def test_plan_creation_validates_price(client, admin):
    response = client.post(
        "/api/admin/planos", headers=admin["headers"], json={"nome": "Grátis", "preco": 0, "duracao_dias": 30}
    )

    assert response.status_code == 400


def test_list_orders_with_filters(client, fake_db, customer, admin, plans):
    paid = fake_db.add_order(customer["row"]["id"], plans["mensal"], status_pagamento="pago")
    fake_db.add_order(customer["row"]["id"], plans["trimestral"])

    response = client.get("/api/admin/pedidos?status_pagamento=pago", headers=admin["headers"])

    assert response.status_code == 200
    orders = response.json()
    assert [order["id"] for order in orders] == [paid["id"]]
    assert orders[0]["usuario_nome"] == "Maria Silva"
    assert orders[0]["usuario_email"] == "cliente@example.com"
    assert orders[0]["plano_nome"] == "Mensal"

    assert client.get("/api/admin/pedidos?status_acesso=ativo", headers=admin["headers"]).json() == []


def test_update_order_access_and_notes(client, fake_db, customer, admin, plans):
    order = fake_db.add_order(customer["row"]["id"], plans["mensal"], status_pagamento="pago")

    response = client.put(
        f"/api/admin/pedidos/{order['id']}",
        headers=admin["headers"],
        json={"status_acesso": "expirado", "observacoes_admin": "Cliente pediu cancelamento"},
    )

    assert response.status_code == 200
    stored = fake_db.row("pedidos", order["id"])
    assert stored["status_acesso"] == "expirado"
    assert stored["observacoes_admin"] == "Cliente pediu cancelamento"
    assert stored["status_pagamento"] == "pago"


def test_update_order_rejects_invalid_access_status(client, fake_db, customer, admin, plans):
    order = fake_db.add_order(customer["row"]["id"], plans["mensal"])

    response = client.put(f"/api/admin/pedidos/{order['id']}", headers=admin["headers"], json={"status_acesso": "x"})

    assert response.status_code == 400


def test_update_unknown_order_returns_404(client, admin):
    response = client.put("/api/admin/pedidos/999", headers=admin["headers"], json={"status_acesso": "ativo"})

    assert response.status_code == 404
    assert response.json() == {"error": "Pedido não encontrado"}


def test_deliver_credentials_requires_paid_order(client, fake_db, fake_email, customer, admin, plans):
    order = fake_db.add_order(customer["row"]["id"], plans["mensal"])

    response = client.post(
        f"/api/admin/pedidos/{order['id']}/credenciais", headers=admin["headers"], json={"credenciais": "user: x"}
    )

    assert response.status_code == 400
    assert fake_email.sent == []


def test_deliver_credentials_activates_access(client, fake_db, fake_email, customer, admin, plans):
    order = fake_db.add_order(customer["row"]["id"], plans["mensal"], status_pagamento="pago")

    response = client.post(
        f"/api/admin/pedidos/{order['id']}/credenciais",
        headers=admin["headers"],
        json={"credenciais": "Usuário: maria\nSenha: abc123"},
    )

    assert response.status_code == 200
    assert response.json()["email_enviado"] is True
    stored = fake_db.row("pedidos", order["id"])
    assert stored["status_acesso"] == "ativo"
    days = (parse_datetime(stored["data_expiracao"]) - utcnow()).days
    assert 29 <= days <= 30

    assert fake_email.templates() == ["credentials.html"]
    assert "Senha: abc123" in fake_email.sent[0]["html"]
    assert fake_db.tables["notificacoes"][0]["tipo"] == "acesso_liberado"


def test_deliver_credentials_keeps_existing_expiration(client, fake_db, customer, admin, plans):
    expires = to_iso(utcnow() + timedelta(days=3))
    order = fake_db.add_order(customer["row"]["id"], plans["mensal"], status_pagamento="pago", data_expiracao=expires)

    client.post(f"/api/admin/pedidos/{order['id']}/credenciais", headers=admin["headers"], json={"credenciais": "c"})

    assert fake_db.row("pedidos", order["id"])["data_expiracao"] == expires


def test_expiration_warning_on_request(client, fake_db, fake_email, customer, admin, plans):
    expires = to_iso(utcnow() + timedelta(days=4, hours=12))
    order = fake_db.add_order(
        customer["row"]["id"], plans["mensal"], status_pagamento="pago", status_acesso="ativo", data_expiracao=expires
    )

    response = client.post(f"/api/admin/pedidos/{order['id']}/aviso-expiracao", headers=admin["headers"])

    assert response.status_code == 200
    assert response.json()["dias_restantes"] == 5
    assert fake_email.templates() == ["expiration_warning.html"]


def test_expiration_warning_without_date_returns_400(client, fake_db, customer, admin, plans):
    order = fake_db.add_order(customer["row"]["id"], plans["mensal"])

    response = client.post(f"/api/admin/pedidos/{order['id']}/aviso-expiracao", headers=admin["headers"])

    assert response.status_code == 400


def test_list_and_search_users(client, fake_db, customer, admin):
    fake_db.add_user("joao@example.com", nome="João Pereira", status=UserStatus.SUSPENDED)

    everyone = client.get("/api/admin/usuarios", headers=admin["headers"]).json()
    assert len(everyone) == 3

    found = client.get("/api/admin/usuarios?search=MARIA", headers=admin["headers"]).json()
    assert [user["email"] for user in found] == ["cliente@example.com"]

    suspended = client.get("/api/admin/usuarios?status=suspensa", headers=admin["headers"]).json()
    assert [user["email"] for user in suspended] == ["joao@example.com"]


def test_user_detail_includes_orders_and_trials(client, fake_db, customer, admin, plans):
    fake_db.add_order(customer["row"]["id"], plans["mensal"])
    client.post("/api/solicitacoes-teste", headers=customer["headers"], json={})

    response = client.get(f"/api/admin/usuarios/{customer['row']['id']}", headers=admin["headers"])

    assert response.status_code == 200
    body = response.json()
    assert len(body["pedidos"]) == 1
    assert len(body["solicitacoes_teste"]) == 1

    assert client.get("/api/admin/usuarios/nao-existe", headers=admin["headers"]).status_code == 404


def test_suspending_a_user_blocks_access(client, fake_db, customer, admin):
    response = client.put(
        f"/api/admin/usuarios/{customer['row']['id']}", headers=admin["headers"], json={"status": "suspensa"}
    )

    assert response.status_code == 200
    assert fake_db.row("usuarios", customer["row"]["id"])["status"] == "suspensa"
    assert client.get("/api/auth/me", headers=customer["headers"]).status_code == 401


def test_statistics(client, fake_db, customer, admin, plans):
    fake_db.add_order(customer["row"]["id"], plans["mensal"], status_pagamento="pago")
    fake_db.add_order(customer["row"]["id"], plans["trimestral"], status_pagamento="pago")
    fake_db.add_order(customer["row"]["id"], plans["mensal"])
    client.post("/api/solicitacoes-teste", headers=customer["headers"], json={})

    response = client.get("/api/admin/estatisticas", headers=admin["headers"])

    assert response.status_code == 200
    assert response.json() == {
        "usuarios": {"total": 2, "ativos": 2},
        "pedidos": {"total": 3, "pagos": 2},
        "solicitacoes_teste": {"pendentes": 1},
        "receita": {"total": 109.8},
    }
