from unittest.mock import patch
from urllib.parse import parse_qs, urlparse

from sqlalchemy import select

from tests.base import DEFAULT_PASSWORD, ApiTestCase

from app.core.security import create_jwt
from app.models.enums import TokenType, UserRole
from app.models.user import Token


class AuthFlowTests(ApiTestCase):
    async def test_signup_creates_student_and_signs_in(self):
        response = await self.client.post(
            "/api/v1/auth/signup",
            json={"name": "New Student", "email": "new@example.com", "password": "Str0ngPass"},
        )
        self.assertEqual(response.status_code, 201, response.text)
        data = response.json()["data"]
        self.assertEqual(data["user"]["role"], "student")
        self.assertEqual(data["user"]["email"], "new@example.com")
        self.assertEqual(data["tokenType"], "bearer")
        self.assertEqual(data["expiresIn"], 15 * 60)

        me = await self.client.get(
            "/api/v1/auth/me", headers={"Authorization": f"Bearer {data['accessToken']}"},
        )
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.json()["data"]["name"], "New Student")

    async def test_signup_with_taken_email_conflicts(self):
        await self.create_user("taken@example.com")
        response = await self.client.post(
            "/api/v1/auth/signup",
            json={"name": "Again", "email": "taken@example.com", "password": "Str0ngPass"},
        )
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["error"]["code"], "HTTP_409")

    async def test_signup_rejects_weak_password(self):
        response = await self.client.post(
            "/api/v1/auth/signup",
            json={"name": "Weak", "email": "weak@example.com", "password": "alllowercase"},
        )
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["error"]["code"], "VALIDATION_ERROR")

    async def test_login_with_wrong_password(self):
        await self.create_user("someone@example.com")
        response = await self.client.post(
            "/api/v1/auth/login", json={"email": "someone@example.com", "password": "Wr0ngPass"},
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"]["message"], "Invalid email or password.")

    async def test_account_locks_after_repeated_failures(self):
        await self.create_user("locked@example.com")
        for _ in range(5):
            response = await self.client.post(
                "/api/v1/auth/login", json={"email": "locked@example.com", "password": "Wr0ngPass"},
            )
            self.assertEqual(response.status_code, 401)

        response = await self.client.post(
            "/api/v1/auth/login", json={"email": "locked@example.com", "password": DEFAULT_PASSWORD},
        )
        self.assertEqual(response.status_code, 429)

    async def test_me_requires_a_live_access_token(self):
        await self.create_user("me@example.com")
        tokens = await self.login("me@example.com")

        self.assertEqual((await self.client.get("/api/v1/auth/me")).status_code, 401)

        as_refresh = await self.client.get(
            "/api/v1/auth/me", headers={"Authorization": f"Bearer {tokens['refreshToken']}"},
        )
        self.assertEqual(as_refresh.status_code, 401)

        garbage = await self.client.get(
            "/api/v1/auth/me", headers={"Authorization": "Bearer not.a.jwt"},
        )
        self.assertEqual(garbage.status_code, 401)

    async def test_success_and_error_bodies_share_one_envelope(self):
        await self.create_user("env@example.com", name="Envelope User")
        tokens = await self.login("env@example.com")

        ok = await self.client.get(
            "/api/v1/auth/me", headers={"Authorization": f"Bearer {tokens['accessToken']}"},
        )
        self.assertEqual(set(ok.json()), {"success", "data"})
        self.assertIs(ok.json()["success"], True)
        self.assertEqual(ok.json()["data"]["email"], "env@example.com")

        denied = await self.client.get("/api/v1/auth/me")
        self.assertEqual(denied.status_code, 401)
        self.assertIs(denied.json()["success"], False)
        self.assertIn("code", denied.json()["error"])
        self.assertIn("message", denied.json()["error"])

    async def test_signed_but_unrecorded_token_is_rejected(self):
        user = await self.create_user("forged@example.com")
        token, _ = create_jwt(user.id, UserRole.STUDENT, TokenType.ACCESS)
        response = await self.client.get(
            "/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"},
        )
        self.assertEqual(response.status_code, 401)

    async def test_refresh_rotates_the_pair(self):
        await self.create_user("rotate@example.com")
        tokens = await self.login("rotate@example.com")

        response = await self.client.post(
            "/api/v1/auth/refresh", json={"refreshToken": tokens["refreshToken"]},
        )
        self.assertEqual(response.status_code, 200, response.text)
        fresh = response.json()["data"]
        self.assertNotEqual(fresh["refreshToken"], tokens["refreshToken"])

        me = await self.client.get(
            "/api/v1/auth/me", headers={"Authorization": f"Bearer {fresh['accessToken']}"},
        )
        self.assertEqual(me.status_code, 200)

        replay = await self.client.post(
            "/api/v1/auth/refresh", json={"refreshToken": tokens["refreshToken"]},
        )
        self.assertEqual(replay.status_code, 401)

    async def test_access_token_cannot_be_used_to_refresh(self):
        await self.create_user("mixup@example.com")
        tokens = await self.login("mixup@example.com")
        response = await self.client.post(
            "/api/v1/auth/refresh", json={"refreshToken": tokens["accessToken"]},
        )
        self.assertEqual(response.status_code, 401)

    async def test_logout_revokes_the_access_token(self):
        await self.create_user("bye@example.com")
        tokens = await self.login("bye@example.com")
        headers = {"Authorization": f"Bearer {tokens['accessToken']}"}

        response = await self.client.post("/api/v1/auth/logout", headers=headers)
        self.assertEqual(response.status_code, 200)

        self.assertEqual((await self.client.get("/api/v1/auth/me", headers=headers)).status_code, 401)


class PasswordResetTests(ApiTestCase):
    async def _request_reset(self, email: str):
        with patch("app.services.auth.send_password_reset_email") as task:
            response = await self.client.post("/api/v1/auth/forgot-password", json={"email": email})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json()["data"]["message"], "If the email exists, a reset link has been sent.",
        )
        return task

    async def test_unknown_email_gets_the_same_answer_and_no_mail(self):
        task = await self._request_reset("nobody@example.com")
        task.delay.assert_not_called()

    async def test_reset_sets_password_and_ends_all_sessions(self):
        user = await self.create_user("reset@example.com")
        old_tokens = await self.login("reset@example.com")

        task = await self._request_reset("reset@example.com")
        task.delay.assert_called_once()
        recipient, reset_url = task.delay.call_args.args
        self.assertEqual(recipient, "reset@example.com")
        parsed = urlparse(reset_url)
        self.assertEqual(parsed.path, "/reset-password")
        token = parse_qs(parsed.query)["token"][0]

        response = await self.client.post(
            "/api/v1/auth/reset-password", json={"token": token, "password": "N3wPassword"},
        )
        self.assertEqual(response.status_code, 200, response.text)

        stale = await self.client.get(
            "/api/v1/auth/me", headers={"Authorization": f"Bearer {old_tokens['accessToken']}"},
        )
        self.assertEqual(stale.status_code, 401)

        await self.login("reset@example.com", "N3wPassword")

        reused = await self.client.post(
            "/api/v1/auth/reset-password", json={"token": token, "password": "An0therPass"},
        )
        self.assertEqual(reused.status_code, 400)

        async with self.SessionLocal() as db:
            rows = await db.execute(
                select(Token).where(Token.user_id == user.id, Token.type == TokenType.PASSWORD_RESET)
            )
            self.assertIsNotNone(rows.scalar_one().revoked_at)

    async def test_bogus_reset_token(self):
        response = await self.client.post(
            "/api/v1/auth/reset-password", json={"token": "nope", "password": "N3wPassword"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["message"], "Invalid or expired reset token.")
