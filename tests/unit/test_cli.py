import json

from ngcmacro.cli.run import main


def write_program(tmp_path, text):
    path = tmp_path / "prog.ngc"
    path.write_text(text)
    return str(path)


def test_prints_command_groups(tmp_path, capsys):
    path = write_program(tmp_path, "#1 = 2\nG1 X#1 Y[#1 * 1.5]\nM30\n")
    assert main([path]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out == ["G1 X2 Y3", "M30"]


def test_dump_variables(tmp_path, capsys):
    path = write_program(tmp_path, "#<_g> = 1\n")
    assert main([path, "--dump-variables"]) == 0
    dump = json.loads(capsys.readouterr().out)
    assert dump["globals"]["_g"]["value"] == 1.0


def test_errors_exit_nonzero(tmp_path, capsys):
    path = write_program(tmp_path, "#1 = #2\n")
    assert main([path, "--strict"]) == 1
    assert "Evaluation Error" in capsys.readouterr().err


def test_iteration_option(tmp_path, capsys):
    path = write_program(tmp_path, "o1 while [#1 lt 5]\n#1 = [#1 + 1]\no1 endwhile\n")
    assert main([path, "--max-iterations", "4"]) == 1
    assert main([path, "--max-iterations", "5"]) == 0


def test_missing_file(tmp_path):
    assert main([str(tmp_path / "missing.ngc")]) == 1
