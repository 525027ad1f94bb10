SERVICE_NAME = "bouno-agent"
VERSION = "0.1.0"
USER_AGENT = f"{SERVICE_NAME}/{VERSION}"
