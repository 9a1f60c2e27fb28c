# compliance_engine/config.py
# Reads config.ini into typed settings.

import configparser
from dataclasses import dataclass, field
from typing import Tuple

DEFAULT_CONFIG_PATH = 'config.ini'


@dataclass(frozen=True)
class DatabaseSettings:
    server: str
    port: int
    database: str
    user: str
    password: str
    login_timeout: int = 15
    query_timeout: int = 60


@dataclass(frozen=True)
class ReportSettings:
    max_concurrent_groups: int = 8
    closed_terms: Tuple[str, ...] = ('closed',)
    resolved_terms: Tuple[str, ...] = ('closed', 'resolved')
    reopened_terms: Tuple[str, ...] = ('reopened',)
    log_dir: str = 'logs'
    log_level: str = 'INFO'


@dataclass(frozen=True)
class Settings:
    database: DatabaseSettings
    report: ReportSettings = field(default_factory=ReportSettings)


def _split_terms(raw: str) -> Tuple[str, ...]:
    return tuple(term.strip() for term in raw.split(',') if term.strip())


def parse_database_settings(section) -> DatabaseSettings:
    # 'server' may carry the port as "host,port", SQL Server style.
    server_and_port = section['server'].split(',')
    return DatabaseSettings(
        server=server_and_port[0].strip(),
        port=int(server_and_port[1]) if len(server_and_port) > 1 else 1433,
        database=section['database'],
        user=section['user'],
        password=section['password'],
        login_timeout=section.getint('login_timeout', 15),
        query_timeout=section.getint('query_timeout', 60),
    )


def parse_report_settings(config: configparser.ConfigParser) -> ReportSettings:
    if not config.has_section('report_settings'):
        return ReportSettings()
    section = config['report_settings']
    defaults = ReportSettings()
    max_concurrent = section.getint('max_concurrent_groups', defaults.max_concurrent_groups)
    if max_concurrent < 1:
        raise ValueError("max_concurrent_groups must be at least 1.")
    return ReportSettings(
        max_concurrent_groups=max_concurrent,
        closed_terms=_split_terms(section.get('closed_terms', 'closed')),
        resolved_terms=_split_terms(section.get('resolved_terms', 'closed, resolved')),
        reopened_terms=_split_terms(section.get('reopened_terms', 'reopened')),
        log_dir=section.get('log_dir', defaults.log_dir),
        log_level=section.get('log_level', defaults.log_level),
    )


def load_settings(config_path: str = DEFAULT_CONFIG_PATH) -> Settings:
    config = configparser.ConfigParser()
    config.read(config_path)
    return Settings(
        database=parse_database_settings(config['ticket_db']),
        report=parse_report_settings(config),
    )
