"""API tests for logo uploads and static serving."""


class TestLogoUpload:

    def test_upload_and_serve(self, client, png_bytes):
        response = client.post("/api/upload/logo", files={"logo": ("brand.png", png_bytes, "image/png")})
        assert response.status_code == 200
        logo_url = response.json()["logo_url"]
        assert logo_url.startswith("/uploads/")
        assert logo_url.endswith(".png")

        served = client.get(logo_url)
        assert served.status_code == 200
        assert served.content == png_bytes
        assert served.headers["content-type"] == "image/png"

    def test_keys_are_unique(self, client, png_bytes):
        first = client.post("/api/upload/logo", files={"logo": ("brand.png", png_bytes, "image/png")})
        second = client.post("/api/upload/logo", files={"logo": ("brand.png", png_bytes, "image/png")})
        assert first.json()["logo_url"] != second.json()["logo_url"]

    def test_rejects_non_image(self, client):
        response = client.post("/api/upload/logo", files={"logo": ("notes.txt", b"hello", "text/plain")})
        assert response.status_code == 400
        assert response.json() == {"detail": "Only image files are allowed"}

    def test_rejects_oversized(self, client):
        too_big = b"\0" * (5 * 1024 * 1024 + 1)
        response = client.post("/api/upload/logo", files={"logo": ("big.png", too_big, "image/png")})
        assert response.status_code == 400
        assert response.json() == {"detail": "File size must be less than 5MB"}

    def test_missing_file(self, client):
        response = client.post("/api/upload/logo")
        assert response.status_code == 400
        assert response.json() == {"detail": "No file uploaded"}

    def test_serve_missing(self, client):
        assert client.get("/uploads/unknown.png").status_code == 404
