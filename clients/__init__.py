# Infrastructure clients
from clients.vault_client import (
    VaultClient,
    VaultError,
    get_database_url,
    get_valkey_url,
    get_email_config,
)
from clients.postgres_client import PostgresClient, DatabaseUnavailableError
from clients.valkey_client import ValkeyClient
from clients.email_client import EmailGatewayClient, EmailGatewayError
from clients.asset_client import AssetClient
