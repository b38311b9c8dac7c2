"""AWS Lambda entry point.

Mangum adapts API Gateway events to the FastAPI app. Lifespan events are
enabled so logging and the rate limit sweep start with each container;
every warm container keeps its own counters.
"""

from mangum import Mangum

from lead_gateway.main import app

handler = Mangum(app, lifespan="auto")
