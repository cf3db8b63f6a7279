from locust import HttpUser, between, task
import os
import uuid

SEED_DIR = os.environ.get("MINFS_LOAD_DIR", "/load")
UPLOAD_BYTES = int(os.environ.get("MINFS_LOAD_UPLOAD_BYTES", str(256 * 1024)))


class GatewayUser(HttpUser):
    wait_time = between(0.5, 2.0)

    def on_start(self):
        self.client.post("/api/fs/mkdir", params={"path": SEED_DIR})
        self.uploaded = []

    def on_stop(self):
        for path in self.uploaded:
            self.client.delete("/api/fs/delete", params={"path": path}, name="/api/fs/delete")
        self.uploaded.clear()

    @task(3)
    def list_files(self):
        self.client.get("/api/fs/list", params={"path": SEED_DIR})

    @task(2)
    def fetch_cluster(self):
        self.client.get("/api/fs/cluster")

    @task(1)
    def upload_and_fetch(self):
        path = f"{SEED_DIR}/{uuid.uuid4().hex}.bin"
        files = {"file": (path.rsplit("/", 1)[-1], os.urandom(UPLOAD_BYTES), "application/octet-stream")}
        resp = self.client.post("/api/fs/upload", params={"path": path}, files=files, name="/api/fs/upload")
        if resp.status_code >= 400:
            return
        self.uploaded.append(path)
        self.client.get("/api/fs/exists", params={"path": path}, name="/api/fs/exists")
        self.client.get("/api/fs/download", params={"path": path}, name="/api/fs/download")

    @task(1)
    def server_status(self):
        self.client.get("/api/fs/server/status", params={"serverType": "data"})
