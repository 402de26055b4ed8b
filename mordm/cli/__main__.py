from mordm.cli.main import main

main()
