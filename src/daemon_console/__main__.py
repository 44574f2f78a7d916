from daemon_console.app import main

main()
