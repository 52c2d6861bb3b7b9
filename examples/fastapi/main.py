import logging
import os

from fastapi import FastAPI

from wafris.middleware import WafrisMiddleware

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s"
)

app = FastAPI()

# The Wafris client is created on the first request: the evaluator script is
# loaded into Redis once and reused for every request after that.
app.add_middleware(
    WafrisMiddleware,
    redis_url=os.getenv("WAFRIS_REDIS_URL", "redis://localhost:6379"),
    timeout_ms=250,
    pool_size=20,
    trusted_proxies=["10.0.0.0/8"],
)


@app.get("/")
async def hello():
    return {"message": "Hello world"}
