import unittest
from unittest.mock import MagicMock, patch

from requests import RequestException

from studytrack.services.auth_service import AppwriteAuthService, AuthServiceError


def _response(status_code, data=None):
    res = MagicMock()
    res.status_code = status_code
    res.content = b"{}" if data is not None else b""
    res.json.return_value = data
    return res


class AppwriteAuthServiceTests(unittest.TestCase):
    def setUp(self):
        self.auth = AppwriteAuthService("http://localhost/v1/", "project")

    @patch("studytrack.services.auth_service.requests.request")
    def test_sign_in(self, request):
        request.return_value = _response(201, {"$id": "sess", "secret": "s3cret", "userId": "u1"})

        result = self.auth.sign_in("a@example.com", "pw")

        self.assertEqual((result.uid, result.session_secret, result.session_id), ("u1", "s3cret", "sess"))
        method, url = request.call_args.args
        self.assertEqual(method, "POST")
        self.assertEqual(url, "http://localhost/v1/account/sessions/email")

    @patch("studytrack.services.auth_service.requests.request")
    def test_bad_credentials(self, request):
        request.return_value = _response(401, {"message": "Invalid credentials", "type": "user_invalid_credentials"})
        with self.assertRaises(AuthServiceError) as ctx:
            self.auth.sign_in("a@example.com", "wrong")
        self.assertEqual(str(ctx.exception), "Invalid credentials")

    @patch("studytrack.services.auth_service.requests.request")
    def test_transport_failure(self, request):
        request.side_effect = RequestException("down")
        with self.assertRaises(AuthServiceError) as ctx:
            self.auth.sign_in("a@example.com", "pw")
        self.assertEqual(str(ctx.exception), "AUTH_SERVICE_UNAVAILABLE")

    @patch("studytrack.services.auth_service.requests.request")
    def test_sign_out_sends_session(self, request):
        request.return_value = _response(204)
        self.auth.sign_out("s3cret")
        self.assertEqual(request.call_args.args[0], "DELETE")
        self.assertEqual(request.call_args.kwargs["headers"]["X-Appwrite-Session"], "s3cret")

    @patch("studytrack.services.auth_service.requests.request")
    def test_sign_out_without_session_is_a_no_op(self, request):
        self.auth.sign_out("")
        request.assert_not_called()


if __name__ == "__main__":
    unittest.main()
