from status_monitor.main import main


if __name__ == "__main__":
    raise SystemExit(main())
