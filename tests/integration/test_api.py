"""Integration tests for the dev-node API."""

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from confidential_amm import __version__
from confidential_amm.api.endpoints import get_node
from confidential_amm.api.main import app
from confidential_amm.api.node import DevNode, build_dev_node
from confidential_amm.client import FheInstance, create_instances
from confidential_amm.constants import ZERO_ADDRESS
from tests.helpers import STRANGER


def to_hex(data: bytes) -> str:
    return "0x" + data.hex()


@pytest.fixture
def node() -> DevNode:
    """Fresh dev node per test."""
    return build_dev_node()


@pytest.fixture
def client(node) -> Iterator[TestClient]:
    """Test client bound to the node fixture."""
    app.dependency_overrides[get_node] = lambda: node
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def wallets(node) -> dict[str, FheInstance]:
    return create_instances(node.chain.runtime.network_public_key, node.chain.chain_id, node.accounts)


def reencrypt_body(wallet: FheInstance, contract: str) -> dict:
    token = wallet.get_token_signature(contract)
    return {
        "sender": wallet.account.address,
        "publicKey": to_hex(token.public_key),
        "signature": to_hex(token.signature),
    }


def mint_and_approve(client, node, wallet, amount):
    """Owner mints ``amount`` of both tokens to itself and approves the pool."""
    owner = wallet.account.address
    for token in (node.token0, node.token1):
        response = client.post(
            f"/tokens/{token.address}/mint",
            json={"sender": owner, "to": owner, "amount": to_hex(wallet.encrypt16(amount))},
        )
        assert response.status_code == 200
        response = client.post(
            f"/tokens/{token.address}/approve",
            json={"sender": owner, "spender": node.pool.address, "amount": to_hex(wallet.encrypt16(amount))},
        )
        assert response.status_code == 200


def add_liquidity(client, wallet, amount0, amount1):
    return client.post(
        "/pool/add-liquidity",
        json={
            "sender": wallet.account.address,
            "amount0": to_hex(wallet.encrypt16(amount0)),
            "amount1": to_hex(wallet.encrypt16(amount1)),
        },
    )


class TestMetadata:
    """Tests for public metadata endpoints."""

    def test_health(self, client):
        """Health endpoint returns ok and the package version."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "version": __version__}

    def test_network(self, client, node):
        """Network info exposes the chain id, network key and accounts."""
        data = client.get("/network").json()
        assert data["chainId"] == node.chain.chain_id
        assert data["networkPublicKey"] == to_hex(node.chain.runtime.network_public_key)
        assert data["accounts"] == [account.address for account in node.accounts.values()]

    def test_pool(self, client, node):
        """Pool info lists both tokens and the widths."""
        data = client.get("/pool").json()
        assert data == {
            "address": node.pool.address,
            "token0": node.token0.address,
            "token1": node.token1.address,
            "amountBits": 16,
            "shareBits": 32,
        }


class TestPoolFlow:
    """Tests for the deposit, swap and read flow over HTTP."""

    def test_deposit_and_read(self, client, node, wallets):
        """A deposit over HTTP is visible in signed reads."""
        alice = wallets["alice"]
        mint_and_approve(client, node, alice, 1000)

        response = add_liquidity(client, alice, 500, 500)
        assert response.status_code == 200
        assert response.json() == {"status": "committed", "sender": alice.account.address}

        reserves = client.post("/pool/reserves", json=reencrypt_body(alice, node.pool.address)).json()
        assert alice.decrypt(node.pool.address, bytes.fromhex(reserves["reserve0"][2:])) == 500
        assert alice.decrypt(node.pool.address, bytes.fromhex(reserves["reserve1"][2:])) == 500

        supply = client.post("/pool/total-supply", json=reencrypt_body(alice, node.pool.address)).json()
        assert alice.decrypt(node.pool.address, bytes.fromhex(supply["ciphertext"][2:])) == 1000

        shares = client.post("/pool/balance", json=reencrypt_body(alice, node.pool.address)).json()
        assert alice.decrypt(node.pool.address, bytes.fromhex(shares["ciphertext"][2:])) == 1000

    def test_swap(self, client, node, wallets):
        """A swap request pays out at the constant-product price."""
        alice, bob = wallets["alice"], wallets["bob"]
        mint_and_approve(client, node, alice, 1000)
        add_liquidity(client, alice, 500, 500)

        client.post(
            f"/tokens/{node.token0.address}/transfer",
            json={"sender": alice.account.address, "to": bob.account.address, "amount": to_hex(alice.encrypt16(100))},
        )
        client.post(
            f"/tokens/{node.token0.address}/approve",
            json={"sender": bob.account.address, "spender": node.pool.address, "amount": to_hex(bob.encrypt16(100))},
        )
        response = client.post(
            "/pool/swap",
            json={
                "sender": bob.account.address,
                "tokenIn": node.token0.address,
                "amountIn": to_hex(bob.encrypt16(100)),
            },
        )
        assert response.status_code == 200

        balance = client.post(f"/tokens/{node.token1.address}/balance", json=reencrypt_body(bob, node.token1.address))
        assert bob.decrypt(node.token1.address, bytes.fromhex(balance.json()["ciphertext"][2:])) == 83

    def test_requests_release_intermediate_handles(self, client, node, wallets):
        """After each request the runtime only holds handles that storage refers to."""
        alice = wallets["alice"]
        mint_and_approve(client, node, alice, 1000)
        add_liquidity(client, alice, 500, 500)
        add_liquidity(client, wallets["bob"], 1, 1)

        live = {handle for contract in (node.token0, node.token1, node.pool) for handle in contract._handles()}
        assert len(node.chain.runtime) == len(live)

    def test_remove_liquidity(self, client, node, wallets):
        """Removing all shares over HTTP returns the deposit."""
        alice = wallets["alice"]
        mint_and_approve(client, node, alice, 1000)
        add_liquidity(client, alice, 500, 500)

        response = client.post(
            "/pool/remove-liquidity",
            json={"sender": alice.account.address, "shares": to_hex(alice.encrypt32(1000))},
        )
        assert response.status_code == 200

        balance = client.post(f"/tokens/{node.token0.address}/balance", json=reencrypt_body(alice, node.token0.address))
        assert alice.decrypt(node.token0.address, bytes.fromhex(balance.json()["ciphertext"][2:])) == 1000


class TestErrorMapping:
    """Tests for error taxonomy to HTTP status mapping."""

    def test_insufficient_allowance_is_conflict(self, client, node, wallets):
        """A deposit without approval is rejected with 409."""
        response = add_liquidity(client, wallets["bob"], 1, 1)
        assert response.status_code == 409
        assert response.json()["error"] == "InsufficientAllowance"

    def test_foreign_signature_is_forbidden(self, client, node, wallets):
        """Reading with someone else's signature is rejected with 403."""
        body = reencrypt_body(wallets["alice"], node.pool.address)
        body["sender"] = wallets["bob"].account.address
        response = client.post("/pool/reserves", json=body)
        assert response.status_code == 403
        assert response.json()["error"] == "AuthenticationError"

    def test_non_owner_mint_is_forbidden(self, client, node, wallets):
        """Only the token owner can mint."""
        bob = wallets["bob"]
        response = client.post(
            f"/tokens/{node.token0.address}/mint",
            json={"sender": bob.account.address, "to": bob.account.address, "amount": to_hex(bob.encrypt16(1))},
        )
        assert response.status_code == 403
        assert response.json()["error"] == "Unauthorized"

    def test_locked_sender_is_forbidden(self, client, node, wallets):
        """Requests can only be submitted for the node's own accounts."""
        response = client.post(
            "/pool/remove-liquidity",
            json={"sender": STRANGER, "shares": to_hex(wallets["alice"].encrypt32(1))},
        )
        assert response.status_code == 403

    def test_malformed_ciphertext_is_bad_request(self, client, wallets):
        """Undecryptable input is rejected with 400."""
        response = client.post(
            "/pool/add-liquidity",
            json={"sender": wallets["alice"].account.address, "amount0": "0x0102", "amount1": "0x0102"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "CiphertextDecodeError"

    def test_unknown_swap_token_is_bad_request(self, client, wallets):
        """Swapping a token the pool does not hold is rejected with 400."""
        alice = wallets["alice"]
        response = client.post(
            "/pool/swap",
            json={"sender": alice.account.address, "tokenIn": STRANGER, "amountIn": to_hex(alice.encrypt16(1))},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "UnknownToken"

    def test_unknown_token_address_is_not_found(self, client, wallets):
        """Token routes only serve the node's tokens."""
        alice = wallets["alice"]
        response = client.post(
            f"/tokens/{STRANGER}/mint",
            json={"sender": alice.account.address, "to": alice.account.address, "amount": to_hex(alice.encrypt16(1))},
        )
        assert response.status_code == 404
        assert response.json()["error"] == "UnknownContract"

    def test_schema_error(self, client):
        """Malformed request bodies fail validation."""
        response = client.post("/pool/add-liquidity", json={"sender": "not-an-address"})
        assert response.status_code == 422

    def test_failed_request_changes_nothing(self, client, node, wallets):
        """A rejected deposit leaves the pool empty."""
        alice = wallets["alice"]
        mint_and_approve(client, node, alice, 10)
        assert add_liquidity(client, alice, 10, 11).status_code == 409

        reserves = client.post("/pool/reserves", json=reencrypt_body(alice, node.pool.address)).json()
        assert alice.decrypt(node.pool.address, bytes.fromhex(reserves["reserve0"][2:])) == 0

    def test_zero_address_is_bad_request(self, client, node, wallets):
        """Arguments a contract rejects map to 400."""
        alice = wallets["alice"]
        response = client.post(
            f"/tokens/{node.token0.address}/approve",
            json={"sender": alice.account.address, "spender": ZERO_ADDRESS, "amount": to_hex(alice.encrypt16(1))},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "InvalidArgument"
