from ticketbridge.main import main

main()
