from nlcore_fhir.config import (
    Config,
    ConfigApp,
    ConfigDatabase,
    ConfigFhir,
    ConfigGateway,
    ConfigStats,
    ConfigUvicorn,
    LogLevel,
)


def get_test_config() -> Config:
    return Config(
        app=ConfigApp(
            loglevel=LogLevel.error,
        ),
        database=ConfigDatabase(
            dsn="sqlite:///:memory:",
            create_tables=True,
            apply_rls=False,
            pool_size=5,
            max_overflow=10,
            pool_pre_ping=False,
            pool_recycle=1,
        ),
        uvicorn=ConfigUvicorn(
            swagger_enabled=True,
            docs_url="/docs",
            host="0.0.0.0",
            port=8503,
            reload=True,
            use_ssl=False,
            ssl_base_dir=None,
            ssl_cert_file=None,
            ssl_key_file=None,
        ),
        gateway=ConfigGateway(
            url="http://gateway.test",
            user_info_path="/api/user/me",
            timeout=1,
            retries=1,
            backoff=0.1,
        ),
        fhir=ConfigFhir(
            default_count=20,
            max_count=50,
            bsn_hash_salt="test-salt",
            server_name="Test FHIR R4 Server",
            publisher="Test",
            publisher_url="https://example.org",
        ),
        stats=ConfigStats(enabled=True, host=None, port=None, module_name="fhir"),
    )
