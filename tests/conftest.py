"""
Pytest configuration and fixtures for testing

The BaaS client, the Mercado Pago gateway and the email sender are replaced
with in-memory fakes through ``app.dependency_overrides``.
"""
import itertools
import uuid
from collections import defaultdict
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from config import settings
from database import get_db
from main import app
from models.enums import Role, UserStatus
from services.email_service import EmailService, get_email_service
from services.payment_gateway import PaymentGatewayError, get_payment_gateway
from services.supabase_client import SupabaseError
from utils.shared_utils import parse_datetime, to_iso


def _same(left, right) -> bool:
    if isinstance(left, bool) or isinstance(right, bool):
        return left is right or left == right
    if left is None or right is None:
        return left is None and right is None
    return str(left) == str(right)


def _comparable(value):
    parsed = parse_datetime(value) if isinstance(value, str) else None
    return parsed if parsed is not None else value


class FakeSupabase:
    """In-memory stand-in for SupabaseClient (rows + auth)."""

    def __init__(self):
        self.tables = defaultdict(list)
        self.auth_users = {}
        self.failing_inserts = set()
        self._ids = itertools.count(1)
        self._clock = datetime(2026, 1, 1, tzinfo=timezone.utc)

    # Row API ------------------------------------------------------------

    def _matches(self, row, filters) -> bool:
        for key, expected in (filters or {}).items():
            column, _, op = key.partition("__")
            actual = row.get(column)
            if not op:
                op = "in" if isinstance(expected, (list, tuple, set)) else "eq"
            if op == "eq" and not _same(actual, expected):
                return False
            if op == "neq" and _same(actual, expected):
                return False
            if op == "in" and not any(_same(actual, value) for value in expected):
                return False
            if op in ("gt", "gte", "lt", "lte"):
                if actual is None:
                    return False
                left, right = _comparable(actual), _comparable(expected)
                if op == "gt" and not left > right:
                    return False
                if op == "gte" and not left >= right:
                    return False
                if op == "lt" and not left < right:
                    return False
                if op == "lte" and not left <= right:
                    return False
        return True

    async def select(self, table, filters=None, *, columns="*", order=None, ascending=True, limit=None, search=None):
        rows = [dict(row) for row in self.tables[table] if self._matches(row, filters)]
        if search:
            search_columns, term = search
            term = term.lower()
            rows = [row for row in rows if any(term in str(row.get(c) or "").lower() for c in search_columns)]
        if order:
            rows.sort(key=lambda row: (row.get(order) is None, _comparable(row.get(order))), reverse=not ascending)
        if limit is not None:
            rows = rows[:limit]
        return rows

    async def select_one(self, table, filters, *, columns="*"):
        rows = await self.select(table, filters, limit=1)
        return rows[0] if rows else None

    async def insert(self, table, row):
        if table in self.failing_inserts:
            raise SupabaseError(f"insert into {table} failed", status_code=500)
        stored = dict(row)
        if table != "user_roles":
            stored.setdefault("id", next(self._ids))
        self._clock += timedelta(seconds=1)
        stored.setdefault("created_at", to_iso(self._clock))
        self.tables[table].append(stored)
        return dict(stored)

    async def update(self, table, values, filters):
        updated = []
        for row in self.tables[table]:
            if self._matches(row, filters):
                row.update(values)
                updated.append(dict(row))
        return updated[0] if updated else None

    async def count(self, table, filters=None):
        return len([row for row in self.tables[table] if self._matches(row, filters)])

    # Auth API -----------------------------------------------------------

    async def create_auth_user(self, email, password):
        if any(user["email"] == email for user in self.auth_users.values()):
            raise SupabaseError("A user with this email address has already been registered", status_code=422)
        user_id = str(uuid.uuid4())
        self.auth_users[user_id] = {"id": user_id, "email": email, "password": password}
        return {"id": user_id, "email": email}

    async def sign_in_with_password(self, email, password):
        for user in self.auth_users.values():
            if user["email"] == email and user["password"] == password:
                return {"access_token": f"token-{user['id']}", "user": {"id": user["id"], "email": email}}
        raise SupabaseError("Invalid login credentials", status_code=400)

    async def get_auth_user(self, access_token):
        user = self.auth_users.get(access_token.replace("token-", "", 1))
        return {"id": user["id"], "email": user["email"]} if user else None

    async def update_auth_user(self, user_id, attributes):
        self.auth_users[user_id].update(attributes)
        return {"id": user_id}

    async def delete_auth_user(self, user_id):
        self.auth_users.pop(user_id, None)

    # Test helpers -------------------------------------------------------

    def add_user(self, email, password="senha123", role=Role.CUSTOMER, nome="Cliente Teste",
                 status=UserStatus.ACTIVE, telefone="11999990000"):
        """Create auth user, profile and role rows; returns (profile_row, auth_headers)."""
        user_id = str(uuid.uuid4())
        self.auth_users[user_id] = {"id": user_id, "email": email, "password": password}
        row = {"id": user_id, "email": email, "nome_completo": nome, "telefone": telefone,
               "status": status.value, "created_at": to_iso(self._clock)}
        self.tables["usuarios"].append(row)
        self.tables["user_roles"].append({"user_id": user_id, "role": role.value})
        return dict(row), {"Authorization": f"Bearer token-{user_id}"}

    def add_plan(self, nome="Mensal", preco=29.9, duracao_dias=30, ativo=True):
        plan = {"id": next(self._ids), "nome": nome, "descricao": f"Plano {nome}", "preco": preco,
                "duracao_dias": duracao_dias, "recursos": ["HD", "Filmes"], "ativo": ativo,
                "created_at": to_iso(self._clock)}
        self._clock += timedelta(seconds=1)
        self.tables["planos"].append(plan)
        return dict(plan)

    def add_order(self, user_id, plan, **fields):
        order = {"id": next(self._ids), "usuario_id": user_id, "plano_id": plan["id"], "valor": plan["preco"],
                 "status_pagamento": "aguardando_pagamento", "status_acesso": "inativo",
                 "mp_preference_id": None, "mp_payment_id": None, "mp_status": None,
                 "data_pagamento": None, "data_expiracao": None, "observacoes_admin": None,
                 "created_at": to_iso(self._clock)}
        self._clock += timedelta(seconds=1)
        order.update(fields)
        self.tables["pedidos"].append(order)
        return dict(order)

    def row(self, table, row_id):
        for row in self.tables[table]:
            if _same(row.get("id"), row_id):
                return row
        return None


class FakeGateway:
    """In-memory Mercado Pago: payments are registered by the test."""

    def __init__(self):
        self.payments = {}
        self.preferences = []
        self.pix_charges = []
        self.lookups = []
        self.fail = False

    def set_payment(self, payment_id, status, external_reference, amount=29.9):
        self.payments[str(payment_id)] = {
            "id": str(payment_id),
            "status": status,
            "status_detail": "accredited" if status == "approved" else status,
            "external_reference": None if external_reference is None else str(external_reference),
            "transaction_amount": amount,
            "date_approved": "2026-01-01T12:00:00.000-03:00" if status == "approved" else None,
        }

    async def create_preference(self, order, user):
        if self.fail:
            raise PaymentGatewayError("Mercado Pago preference create returned 500", status_code=500)
        preference_id = f"pref-{order['id']}-{len(self.preferences) + 1}"
        self.preferences.append({"order": order, "user": user, "preference_id": preference_id})
        return {
            "preference_id": preference_id,
            "init_point": f"https://mp.test/checkout?pref_id={preference_id}",
            "sandbox_init_point": f"https://sandbox.mp.test/checkout?pref_id={preference_id}",
        }

    async def create_pix_charge(self, order, user):
        if self.fail:
            raise PaymentGatewayError("Mercado Pago pix create returned 500", status_code=500)
        payment_id = str(900000 + len(self.pix_charges) + 1)
        self.pix_charges.append({"order": order, "payment_id": payment_id})
        self.set_payment(payment_id, "pending", order["id"], order["valor"])
        return {"payment_id": payment_id, "qr_code": "00020126pix", "qr_code_base64": "iVBORw0KGgo=",
                "ticket_url": f"https://mp.test/pix/{payment_id}"}

    async def get_payment(self, payment_id):
        self.lookups.append(str(payment_id))
        if self.fail:
            raise PaymentGatewayError("Mercado Pago payment get returned 500", status_code=500)
        if str(payment_id) not in self.payments:
            raise PaymentGatewayError("Mercado Pago payment get returned 404: not found", status_code=404)
        return dict(self.payments[str(payment_id)])


class RecordingEmailService(EmailService):
    """Renders every template for real but records messages instead of sending."""

    def __init__(self):
        super().__init__(host="smtp.test", port=587, username="no-reply@iptv.test", password="x")
        self.sent = []

    async def send(self, to, subject, template_name, **context):
        html = self.render(template_name, **context)
        self.sent.append({"to": to, "subject": subject, "template": template_name, "html": html})
        return True

    def templates(self):
        return [message["template"] for message in self.sent]


@pytest.fixture
def fake_db():
    return FakeSupabase()


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def fake_email():
    return RecordingEmailService()


@pytest.fixture
def client(fake_db, fake_gateway, fake_email, monkeypatch):
    """FastAPI TestClient fixture with the BaaS, gateway and email overrides"""
    monkeypatch.setattr(settings, "mp_webhook_secret", None)

    async def override_get_db():
        yield fake_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: fake_gateway
    app.dependency_overrides[get_email_service] = lambda: fake_email

    test_client = TestClient(app)
    yield test_client

    # Cleanup: remove dependency overrides
    app.dependency_overrides.clear()


@pytest.fixture
def customer(fake_db):
    row, headers = fake_db.add_user("cliente@example.com", nome="Maria Silva")
    return {"row": row, "headers": headers}


@pytest.fixture
def admin(fake_db):
    row, headers = fake_db.add_user("admin@example.com", role=Role.ADMIN, nome="Admin")
    return {"row": row, "headers": headers}


@pytest.fixture
def plans(fake_db):
    return {
        "trimestral": fake_db.add_plan("Trimestral", preco=79.9, duracao_dias=90),
        "mensal": fake_db.add_plan("Mensal", preco=29.9, duracao_dias=30),
        "antigo": fake_db.add_plan("Antigo", preco=9.9, duracao_dias=7, ativo=False),
    }
