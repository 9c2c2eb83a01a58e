from indexable.cli import main

main()
