from openvoice.main import main

main()
