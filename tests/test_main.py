import sys
import os
import logging

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from main import main


class TestMain:
    def test_report(self, tmp_path, capsys):
        csv_file = tmp_path / "test.csv"
        csv_file.write_text('\n'.join([
            "type, client, tx, amount",
            "deposit, 2, 1, 5.00",
            "deposit, 1, 2, 2.0",
            "withdrawal, 2, 3, 1.5",
            "dispute, 1, 2,",
            "chargeback, 1, 2,",
            "deposit, 1, 4, 10",
            "withdrawal, 1, 5, 0",
        ]))

        assert main([str(csv_file)]) == 0

        captured = capsys.readouterr()
        assert captured.out == (
            "client,available,held,total,locked\n"
            "1,0.0000,0.0000,0.0000,true\n"
            "2,3.5000,0.0000,3.5000,false\n"
        )
        assert "Processed: 5, Invalid: 0, Ignored: 2" in captured.err

    def test_num_shards_argument(self, tmp_path, capsys):
        csv_file = tmp_path / "test.csv"
        csv_file.write_text("type,client,tx,amount\ndeposit,1,1,1\n")

        assert main([str(csv_file), "1"]) == 0
        assert "1,1.0000,0.0000,1.0000,false" in capsys.readouterr().out

    def test_usage(self, capsys):
        assert main([]) == 1
        assert "Usage" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        assert main([str(tmp_path / "nope.csv")]) == 1
        assert "Input file not found" in capsys.readouterr().err

    def test_invalid_num_shards(self, tmp_path, capsys):
        csv_file = tmp_path / "test.csv"
        csv_file.write_text("type,client,tx,amount\n")

        assert main([str(csv_file), "zero"]) == 1
        assert main([str(csv_file), "0"]) == 1
        assert "Invalid num_shards" in capsys.readouterr().err

    def test_oversized_amount_skipped(self, tmp_path, capsys):
        csv_file = tmp_path / "test.csv"
        csv_file.write_text('\n'.join([
            "type,client,tx,amount",
            "deposit,1,1,1000000000000000000000000",
            "deposit,1,2,99999999999999999999.9999",
            "deposit,1,3,99999999999999999999.9999",
        ]))

        assert main([str(csv_file), "1"]) == 0

        captured = capsys.readouterr()
        assert captured.out == (
            "client,available,held,total,locked\n"
            "1,199999999999999999999.9998,0.0000,199999999999999999999.9998,false\n"
        )
        assert "Processed: 2, Invalid: 0, Ignored: 0" in captured.err

    def test_shard_failure_reported(self, tmp_path, capsys, caplog, monkeypatch):
        def explode(self, transaction):
            raise ValueError("boom")

        monkeypatch.setattr("ledger.Ledger.apply", explode)
        csv_file = tmp_path / "test.csv"
        csv_file.write_text("type,client,tx,amount\ndeposit,1,1,1\n")

        with caplog.at_level(logging.ERROR, logger="main"):
            assert main([str(csv_file), "1"]) == 2
        assert capsys.readouterr().out == ""
        assert "Processing of" in caplog.text
