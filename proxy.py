"""Run caiproxy with uvicorn.

Settings come from configs/config_default.yaml (or $CAIPROXY_CONFIG) with
CAIPROXY_HOST / CAIPROXY_PORT and friends overriding individual values.
"""

from caiproxy.main import run

if __name__ == "__main__":
    run()
