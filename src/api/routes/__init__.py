"""HTTP routers: public credit queries and administration."""
