import logging
import os

from flask import Flask, jsonify

from wafris import wafris_sync
from wafris.middleware import WafrisWSGIMiddleware

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s"
)

app = Flask(__name__)

waf = wafris_sync(
    redis_url=os.getenv("WAFRIS_REDIS_URL", "redis://localhost:6379"),
    timeout_ms=250,
    quiet_mode=True,
)
app.wsgi_app = WafrisWSGIMiddleware(app.wsgi_app, waf)


@app.route("/")
def hello():
    return jsonify(message="Hello world")


if __name__ == "__main__":
    app.run(debug=True)
