from locust import HttpUser, task, constant

class StreamApiUser(HttpUser):
    # Dashboards poll the read-only endpoints about once a second
    wait_time = constant(1.0)

    @task(3)
    def get_stocks(self):
        self.client.get("/stocks")

    @task(1)
    def get_metrics(self):
        self.client.get("/metrics")
