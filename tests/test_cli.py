import json


def test_attest_execute(flask_app):
    runner = flask_app.test_cli_runner()
    result = runner.invoke(args=['attest', '--moves', '15', '--time', '30', '--matched-pairs', '8'])
    assert result.exit_code == 0, result.output
    assert 'Execution successful' in result.output
    assert '- Game Complete: true' in result.output
    assert 'FINAL_SCORE=75' in result.output
    assert 'PROOF_HASH' not in result.output


def test_attest_prove_writes_receipt(flask_app, tmp_path):
    out_path = tmp_path / 'receipt.json'
    runner = flask_app.test_cli_runner()
    result = runner.invoke(args=[
        'attest', '--prove', '--moves', '50', '--time', '10', '--matched-pairs', '8',
        '--output', str(out_path),
    ])
    assert result.exit_code == 0, result.output
    assert 'Proof verified successfully' in result.output
    assert 'FINAL_SCORE=60' in result.output
    assert 'PROOF_HASH=0x' in result.output

    receipt = json.loads(out_path.read_text())
    assert receipt['verified'] is True
    assert receipt['output'] == {
        'moves': 50, 'time': 10, 'matchedPairs': 8, 'finalScore': 60, 'isComplete': True,
    }


def test_attest_from_input_file(flask_app, tmp_path):
    input_path = tmp_path / 'input.json'
    input_path.write_text(json.dumps({'moves': 9, 'time': 40, 'matchedPairs': 7, 'score': 500}))
    runner = flask_app.test_cli_runner()
    result = runner.invoke(args=['attest', '--input', str(input_path)])
    assert result.exit_code == 0, result.output
    assert 'FINAL_SCORE=0' in result.output
    assert '- Game Complete: false' in result.output


def test_attest_rejects_invalid_json(flask_app, tmp_path):
    input_path = tmp_path / 'input.json'
    input_path.write_text('{not json')
    result = flask_app.test_cli_runner().invoke(args=['attest', '--input', str(input_path)])
    assert result.exit_code == 1
    assert 'Failed to parse JSON input' in result.output


def test_attest_requires_all_counters(flask_app):
    result = flask_app.test_cli_runner().invoke(args=['attest', '--moves', '3'])
    assert result.exit_code == 2


def test_attest_rejects_negative_counters(flask_app):
    result = flask_app.test_cli_runner().invoke(args=['attest', '--moves=-1', '--time', '3', '--matched-pairs', '8'])
    assert result.exit_code == 1
    assert 'FINAL_SCORE' not in result.output


def test_db_reset(flask_app):
    result = flask_app.test_cli_runner().invoke(args=['db-reset'])
    assert result.exit_code == 0
    assert 'Database has been reset!' in result.output


def test_attest_reports_unknown_prover_backend(flask_app):
    flask_app.config['PROVER_BACKEND'] = 'quantum'
    result = flask_app.test_cli_runner().invoke(
        args=['attest', '--prove', '--moves', '15', '--time', '30', '--matched-pairs', '8'])
    assert result.exit_code == 1
    assert "unknown prover backend 'quantum'" in result.output
    assert result.exception is None or isinstance(result.exception, SystemExit)
