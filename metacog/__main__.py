from metacog.cli import main

main()
