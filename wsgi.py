import dataclasses
import json
import sys

import click
from flask import current_app
from flask.cli import AppGroup

from App.main import create_app
from App.services import OptimizationService, PayloadError
from staffing_lp import DataError, EngineUnavailable, ModelVariant, SolverAdapter

app = create_app()

# Optimisation Commands

optimize_cli = AppGroup('optimize', help='Build and solve school visit plans')


def _load_payload(path: str) -> dict:
    try:
        with open(path, encoding='utf-8') as handle:
            payload = json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        raise click.BadParameter(f'cannot read scenario file: {exc}', param_hint='SCENARIO_FILE') from exc
    if not isinstance(payload, dict):
        raise click.BadParameter('scenario file must contain a JSON object', param_hint='SCENARIO_FILE')
    return payload


def _apply_variant(payload: dict, variant) -> dict:
    if variant is not None:
        payload['variant'] = variant
    return payload


def _command_service(time_limit) -> OptimizationService:
    """The app's service, or a copy with its own solver handle when the time limit is overridden"""
    service = current_app.extensions['optimization_service']
    if time_limit is None:
        return service
    if time_limit <= 0:
        raise click.BadParameter('time limit must be greater than 0', param_hint='--time-limit')
    config = dataclasses.replace(service.adapter.config, time_limit=time_limit)
    return OptimizationService(default_variant=service.default_variant, adapter=SolverAdapter(config))


def _format_number(value) -> str:
    return '-' if value is None else f'{value:g}'


def _summarize(result: dict) -> str:
    lines = [
        f"Scenario {result['scenario_id']} [{result['variant']}]: {result['status_label']} "
        f"in {result['solve_time']:.2f}s, objective {_format_number(result['objective_value'])}",
        '',
        'Employees (min / max / assigned / avg distance):',
    ]
    for row in result['employees']:
        lines.append(
            f"  {row['employee_id']:<20} {row['role']:<10} {row['minimum']:>5} / {row['maximum']:<5} "
            f"{_format_number(row['total_children']):>8}  {_format_number(row['average_distance'])}"
        )
    lines.extend(['', 'Assignments (school -> employee: children, distance):'])
    for row in result['pairs']:
        lines.append(
            f"  {row['school_id']} -> {row['employee_id']}: "
            f"{_format_number(row['children'])}, {_format_number(row['distance'])}"
        )
    return '\n'.join(lines)


@optimize_cli.command('solve', help='Solve the scenario described by a JSON file')
@click.argument('scenario_file')
@click.option('--variant', type=click.Choice([variant.value for variant in ModelVariant]), default=None, help='Model variant (defaults to MODEL_VARIANT)')
@click.option('--time-limit', type=int, default=None, help='Solver time limit in seconds')
@click.option('--json', 'as_json', is_flag=True, help='Print the raw result as JSON')
def solve_command(scenario_file, variant, time_limit, as_json):
    service = _command_service(time_limit)
    payload = _apply_variant(_load_payload(scenario_file), variant)
    try:
        result = service.solve(payload)
    except (PayloadError, DataError) as exc:
        raise click.ClickException(f'invalid scenario: {exc}') from exc
    except EngineUnavailable as exc:
        raise click.ClickException(str(exc)) from exc

    if as_json:
        click.echo(json.dumps(result, indent=2))
    else:
        click.echo(_summarize(result))
    if result['status'] not in ('Optimal', 'Feasible'):
        sys.exit(2)


@optimize_cli.command('problem', help='Print the LP/MIP built for a scenario without solving it')
@click.argument('scenario_file')
@click.option('--variant', type=click.Choice([variant.value for variant in ModelVariant]), default=None, help='Model variant (defaults to MODEL_VARIANT)')
def problem_command(scenario_file, variant):
    payload = _apply_variant(_load_payload(scenario_file), variant)
    try:
        result = current_app.extensions['optimization_service'].describe_problem(payload)
    except (PayloadError, DataError) as exc:
        raise click.ClickException(f'invalid scenario: {exc}') from exc
    click.echo(json.dumps(result, indent=2))


app.cli.add_command(optimize_cli)

# Test Commands

test_cli = AppGroup('test', help='Testing commands')


@test_cli.command('app', help='Run tests (all/core/api)')
@click.argument('type', default='all')
def run_tests(type):
    import pytest

    if type == 'core':
        sys.exit(pytest.main(['-q', '--ignore=App']))
    elif type == 'api':
        sys.exit(pytest.main(['-q', 'App/tests']))
    else:
        sys.exit(pytest.main([]))


app.cli.add_command(test_cli)
