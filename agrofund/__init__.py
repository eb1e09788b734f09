"""AgroFund crowdfunding backend.

Farmers submit agricultural projects, admins approve or reject them and
investors fund approved projects. All state lives in a single DuckDB
key/value record store; portfolio and platform analytics are derived
from it on demand.
"""

__version__ = "0.1.0"
